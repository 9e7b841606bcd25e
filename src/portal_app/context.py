"""
Portal context: the collaborators every request needs, built once at startup.

The context replaces module-level pool/config globals. It is created by the
application lifespan (or by tests with their own engine) and handed to the
services explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from src import config
from src.portal_app.models.database import utcnow
from src.portal_app.services.audit_service import AuditLogService
from src.portal_app.services.connection_pool import ConnectionPoolManager
from src.portal_app.services.credential_provider import CredentialProvider
from src.portal_app.services.login_throttle import LoginThrottle
from src.portal_app.services.notification_service import NotificationHub


@dataclass
class PortalContext:
    credentials: CredentialProvider
    pool: ConnectionPoolManager
    audit: AuditLogService
    notifications: NotificationHub
    throttle: LoginThrottle
    immediate_settlement: bool = False
    clock: Callable[[], datetime] = field(default=utcnow)

    def start(self) -> None:
        """Open the pool; the schema is created with it."""
        self.pool.get_connection()

    def close(self) -> None:
        self.audit.shutdown()
        self.pool.dispose()


def build_context(
    pool: Optional[ConnectionPoolManager] = None,
    throttle_enabled: bool = True,
    audit_async: Optional[bool] = None,
    immediate_settlement: Optional[bool] = None,
) -> PortalContext:
    """Assemble a PortalContext from configuration."""
    credentials = CredentialProvider()
    pool = pool or ConnectionPoolManager(credentials=credentials)
    context = PortalContext(
        credentials=credentials,
        pool=pool,
        audit=AuditLogService(
            pool, asynchronous=config.AUDIT_ASYNC if audit_async is None else audit_async
        ),
        notifications=NotificationHub(),
        throttle=LoginThrottle(enabled=throttle_enabled),
        immediate_settlement=(
            config.IMMEDIATE_SETTLEMENT if immediate_settlement is None else immediate_settlement
        ),
    )
    logger.info(
        f"Portal context ready (immediate_settlement={context.immediate_settlement}, "
        f"login_throttle={'on' if throttle_enabled else 'off'})"
    )
    return context
