from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware

from src import config
from src.api import schemas
from src.api.dependencies import get_context
from src.api.limiter import is_testing, limiter
from src.api.logging_config import LOG_FILE, get_request_logger
from src.api.routers import auth, notifications, payments, webhooks
from src.portal_app.context import PortalContext, build_context
from src.portal_app.errors import PortalError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the portal context before accepting requests"""
    logger.info("=" * 60)
    logger.info("Starting Customer Payment Portal API...")
    logger.info(f"Log file: {LOG_FILE}")
    logger.info("=" * 60)

    if getattr(app.state, "context", None) is None:
        app.state.context = build_context(throttle_enabled=not is_testing())

    # The pool is opened here, once, so request handlers never race to create it
    try:
        app.state.context.start()
        logger.info("Database initialized successfully")
    except PortalError as e:
        # Served degraded; the first request that reaches the store creates the schema
        logger.error(f"Failed to initialize database: {e}")

    logger.info("Server ready to accept requests")

    yield

    logger.info("Shutting down Customer Payment Portal API...")
    app.state.context.close()


# Initialize FastAPI app
app = FastAPI(
    title=f"{config.APP_NAME} API",
    description="Registration, login and payment intake for the customer portal",
    version=config.APP_VERSION,
    lifespan=lifespan,
)

# Add rate limiter to app state (exemptions handled per-route)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    get_request_logger().warning(f"Malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"message": "Malformed request body"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    get_request_logger().exception(f"Uncaught error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Backend server is running! Customer Portal API."


@app.get("/health", response_model=schemas.HealthResponse)
def health(context: PortalContext = Depends(get_context)):
    """Health check endpoint"""
    if context.pool.ping():
        return {"status": "OK", "storeStatus": "connected"}
    return JSONResponse(
        status_code=500,
        content={"status": "DB Connection Error", "storeStatus": "unreachable"},
    )


app.include_router(auth.router, tags=["auth"])
app.include_router(payments.router, prefix="/api", tags=["payments"])
app.include_router(webhooks.router, tags=["webhooks"])
app.include_router(notifications.router, tags=["notifications"])

if config.FORCE_HTTPS:
    app.add_middleware(HTTPSRedirectMiddleware)

# Configure CORS
# Split comma-separated string into list
origins = [origin.strip() for origin in config.ALLOWED_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)

if __name__ == "__main__":
    uvicorn.run("src.api.main:app", host=config.BACKEND_HOST, port=config.BACKEND_PORT, reload=True)
