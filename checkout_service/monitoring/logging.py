"""
Logging setup for the checkout API and queue workers.

structlog events carry whatever context is bound in contextvars:
- request_id, method, path: bound by the API middleware per request
- queue, message_id: bound by QueueListener per message

Third-party records (boto, stripe, SQLAlchemy) go through the stdlib root
logger with a python-json-logger formatter so every line on stdout is JSON.
"""
import logging
import sys
from typing import Any, Dict

import structlog
from pythonjsonlogger import jsonlogger

from checkout_service import __version__
from checkout_service.config import Settings, get_settings

MAX_LOGGED_BODY_LENGTH = 512

QUIET_LOGGERS: Dict[str, int] = {
    "boto3": logging.WARNING,
    "botocore": logging.WARNING,
    "urllib3": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "stripe": logging.INFO,
}


def add_service_context(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Stamp service name, environment and version on every event."""
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("env", settings.app_env)
    event_dict.setdefault("version", __version__)
    return event_dict


def truncate_message_body(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Cap queue message bodies attached to log events."""
    body = event_dict.get("body")
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str) and len(body) > MAX_LOGGED_BODY_LENGTH:
        event_dict["body"] = f"{body[:MAX_LOGGED_BODY_LENGTH]}...[{len(body)} chars]"
    return event_dict


def _renderer(settings: Settings) -> Any:
    if settings.debug and not settings.is_production:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "logger",
                "message": "event",
            },
        )
    )
    return handler


def setup_logging() -> None:
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once; existing root handlers are replaced.
    """
    settings = get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.format_exc_info,
            add_service_context,
            truncate_message_body,
            _renderer(settings),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(_json_handler())

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        app_env=settings.app_env,
        renderer=type(_renderer(settings)).__name__,
    )
