"""
Database credential resolution.

Credentials come from AWS Secrets Manager when a secret name is configured and
reachable, and from the static DB_* settings otherwise. The provider never
raises to its caller: every secret store failure is logged and answered with
the static fallback.
"""

import json
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config
from loguru import logger

from src import config
from src.portal_app.errors import SecretUnavailable

SOURCE_SECRET_STORE = "secret_store"
SOURCE_ENVIRONMENT = "environment"


@dataclass(frozen=True)
class CredentialBundle:
    """Resolved database connection parameters."""

    user: str
    password: str
    host: str
    database: str
    source: str = SOURCE_ENVIRONMENT

    def __repr__(self):
        # Keep the password out of logs and tracebacks
        return (
            f"CredentialBundle(user={self.user!r}, host={self.host!r}, "
            f"database={self.database!r}, source={self.source!r})"
        )


def _default_client_factory(region: str, timeout: float) -> Any:
    client_config = Config(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"max_attempts": 1},
    )
    return boto3.client("secretsmanager", region_name=region, config=client_config)


class CredentialProvider:
    """Resolves and caches the CredentialBundle for the process."""

    def __init__(
        self,
        secret_name: Optional[str] = None,
        region: Optional[str] = None,
        fallback: Optional[CredentialBundle] = None,
        client_factory: Optional[Callable[[str, float], Any]] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.secret_name = config.AWS_SECRET_NAME if secret_name is None else secret_name
        self.region = region or config.AWS_REGION
        self.fallback = fallback or CredentialBundle(
            user=config.DB_USER,
            password=config.DB_PASSWORD,
            host=config.DB_SERVER,
            database=config.DB_NAME,
        )
        self.timeout_seconds = timeout_seconds or config.STORE_TIMEOUT_SECONDS
        self._client_factory = client_factory or _default_client_factory
        self._bundle: Optional[CredentialBundle] = None
        self._lock = threading.Lock()

    def resolve(self) -> CredentialBundle:
        """
        Return the cached bundle, resolving it on first use.

        Returns:
            CredentialBundle from the secret store, or the static fallback
        """
        if self._bundle is not None:
            return self._bundle

        with self._lock:
            if self._bundle is None:
                try:
                    self._bundle = self._fetch_secret()
                    logger.info(
                        f"DB credentials loaded from AWS Secrets Manager (secret '{self.secret_name}')"
                    )
                except SecretUnavailable as e:
                    logger.warning(f"Falling back to static DB config: {e}")
                    self._bundle = self.fallback
        return self._bundle

    def reload(self) -> CredentialBundle:
        """Drop the cached bundle and resolve again."""
        with self._lock:
            self._bundle = None
        return self.resolve()

    def _fetch_secret(self) -> CredentialBundle:
        if not self.secret_name:
            raise SecretUnavailable("AWS_SECRET_NAME is not configured")

        try:
            client = self._client_factory(self.region, self.timeout_seconds)
            response = client.get_secret_value(
                SecretId=self.secret_name, VersionStage="AWSCURRENT"
            )
            secret = json.loads(response["SecretString"])
            return CredentialBundle(
                user=secret["username"],
                password=secret["password"],
                host=secret["host"],
                database=secret["dbname"],
                source=SOURCE_SECRET_STORE,
            )
        except Exception as e:
            raise SecretUnavailable(f"{type(e).__name__}: {e}") from e
