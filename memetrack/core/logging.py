"""Loguru setup for the ingestion job and the API.

Records carry two extras: ``name`` (the component, bound by
``get_logger``) and ``pass_`` (the ingestion pass, bound by
``ETLService.run`` for the duration of a pass, ``-`` outside one).
ERROR records are also posted to Slack when ``SLACK_WEBHOOK_URL`` is set.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict

import httpx
from loguru import logger

from memetrack.core.config import settings

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[pass_]} | {extra[name]}:{function}:{line} | {message}"

DEFAULT_EXTRA = {"name": "memetrack", "pass_": "-"}

LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}

# Libraries that log through stdlib logging
INTERCEPTED = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine")

_configured = False


class InterceptHandler(logging.Handler):
    """Forward stdlib records (uvicorn, SQLAlchemy, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_name == "emit":
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def resolve_level(raw: str | None) -> str:
    """Map a configured level to a loguru level name, falling back to INFO."""
    level = (raw or "INFO").strip().upper()
    level = LEVEL_ALIASES.get(level, level)
    return level if level in LEVELS else "INFO"


def slack_text(record: Dict[str, Any]) -> str:
    """One Slack notice: level, failing pass (when inside one) and origin."""
    extra = record["extra"]
    where = f"{extra.get('name', 'memetrack')}:{record['function']}:{record['line']}"
    pass_name = extra.get("pass_", "-")
    prefix = f"[{record['level'].name}]"
    if pass_name != "-":
        prefix = f"{prefix} pass={pass_name}"
    return f"{prefix} {where}\n{record['message']}"


def _slack_sink(message: Any) -> None:
    try:
        httpx.post(settings.SLACK_WEBHOOK_URL, json={"text": slack_text(message.record)}, timeout=5.0)
    except httpx.HTTPError:
        # Logging from here would re-enter this sink
        pass


def configure_logging() -> None:
    global _configured

    if _configured:
        return
    _configured = True

    level = resolve_level(settings.effective_log_level)

    logger.remove()
    logger.configure(extra=DEFAULT_EXTRA)
    logger.add(sys.stdout, level=level, format=LOG_FORMAT, backtrace=False, diagnose=False)

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_dir / settings.LOG_FILE,
        level=level,
        format=LOG_FORMAT,
        rotation=settings.LOG_FILE_ROTATION,
        retention=settings.LOG_FILE_RETENTION,
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )

    if settings.SLACK_WEBHOOK_URL:
        logger.add(_slack_sink, level="ERROR", enqueue=True)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED:
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False

    # httpx logs every Bitquery request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logger.__class__:
    return logger.bind(name=name)


configure_logging()
