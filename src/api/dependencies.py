from fastapi import Depends
from fastapi.requests import HTTPConnection

from src.portal_app.context import PortalContext
from src.portal_app.errors import InternalError
from src.portal_app.services.account_service import AuthenticationEngine
from src.portal_app.services.payment_service import PaymentIntakeService
from src.portal_app.services.transaction_service import TransactionQueryService
from src.portal_app.services.webhook_service import WebhookService


def get_context(connection: HTTPConnection) -> PortalContext:
    """The PortalContext built by the application lifespan."""
    context = getattr(connection.app.state, "context", None)
    if context is None:
        raise InternalError("Service is not initialized")
    return context


def get_auth_engine(context: PortalContext = Depends(get_context)) -> AuthenticationEngine:
    return AuthenticationEngine(context)


def get_payment_service(context: PortalContext = Depends(get_context)) -> PaymentIntakeService:
    return PaymentIntakeService(context)


def get_transaction_service(
    context: PortalContext = Depends(get_context),
) -> TransactionQueryService:
    return TransactionQueryService(context)


def get_webhook_service(context: PortalContext = Depends(get_context)) -> WebhookService:
    return WebhookService(context.notifications)
