"""
Logging configuration for the payment portal.

Console output plus three file sinks: everything, warnings and above, and the
audit trail (the `AUDIT[...]` lines written by the audit recorder). Card
numbers and secrets are masked in every record before any sink sees it.
"""

import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

from src import config

LOGS_DIR = config.LOGS_DIR
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILE = LOGS_DIR / f"payment_portal_{datetime.now().strftime('%Y-%m-%d')}.log"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[context]: <5}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

LOG_FORMAT_FILE = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[context]: <5} | {name}:{line} | {message}"

AUDIT_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} | {message}"

CARD_NUMBER = re.compile(r"\b\d{9,15}(\d{4})\b", re.ASCII)
SECRET_FIELD = re.compile(
    r"""(['"]?(?:password|cvv|verification_code|token|client_secret)['"]?\s*[:=]\s*)(['"]?)[^'",\s}]+\2""",
    re.IGNORECASE,
)


def redact(message: str) -> str:
    """Mask card numbers down to their last four digits and blank secret fields."""
    message = CARD_NUMBER.sub(lambda m: "*" * (len(m.group(0)) - 4) + m.group(1), message)
    return SECRET_FIELD.sub(lambda m: f"{m.group(1)}{m.group(2)}***{m.group(2)}", message)


def _patch_record(record):
    record["extra"].setdefault("context", "APP")
    record["message"] = redact(record["message"])


def is_audit_record(record) -> bool:
    return record["message"].startswith("AUDIT[")


def setup_logging(logs_dir: Optional[Path] = None):
    """Configure loguru sinks; `logs_dir` overrides LOGS_DIR."""
    logs_dir = Path(logs_dir) if logs_dir else LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    today = datetime.now().strftime("%Y-%m-%d")
    production = config.ENVIRONMENT == "production"

    logger.remove()
    logger.configure(patcher=_patch_record)

    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=config.LOG_LEVEL or ("INFO" if production else "DEBUG"),
        colorize=True,
        backtrace=True,
        # No local variable dumps in production tracebacks
        diagnose=not production,
    )

    logger.add(
        logs_dir / f"payment_portal_{today}.log",
        format=LOG_FORMAT_FILE,
        level="DEBUG",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        diagnose=False,
        enqueue=True,
    )

    logger.add(
        logs_dir / f"errors_{today}.log",
        format=LOG_FORMAT_FILE,
        level="WARNING",
        rotation="10 MB",
        retention="14 days",
        compression="zip",
        backtrace=True,
        diagnose=False,
        enqueue=True,
    )

    # Audit trail outlives the general logs
    logger.add(
        logs_dir / f"audit_{today}.log",
        format=AUDIT_FORMAT,
        level="INFO",
        filter=is_audit_record,
        rotation="00:00",
        retention=f"{config.AUDIT_LOG_RETENTION_DAYS} days",
        enqueue=True,
    )

    logger.info(f"Logging initialized in {logs_dir}")
    return logger


def get_request_logger():
    """Get a logger specifically for HTTP request/response logging."""
    return logger.bind(context="HTTP")


# Initialize logging on import
setup_logging()
