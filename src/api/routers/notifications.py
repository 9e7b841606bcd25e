import asyncio
import contextlib

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from loguru import logger

from src.api.dependencies import get_context
from src.portal_app.context import PortalContext

router = APIRouter()


async def _forward(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        event = await queue.get()
        await websocket.send_json(event)


@router.websocket("/ws/payments")
async def payment_events(
    websocket: WebSocket,
    context: PortalContext = Depends(get_context),
):
    """Stream payment status events to a connected client."""
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # Publishers run on worker threads; hand events over to this loop
    subscription_id = context.notifications.subscribe(
        lambda event: loop.call_soon_threadsafe(queue.put_nowait, event)
    )
    forwarder = asyncio.create_task(_forward(websocket, queue))
    try:
        await websocket.send_json({"event": "connected"})
        while True:
            message = await websocket.receive_text()
            logger.debug(f"WS message received: {message}")
    except WebSocketDisconnect:
        logger.info("WS client disconnected from payment events")
    finally:
        context.notifications.unsubscribe(subscription_id)
        forwarder.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await forwarder
