import logging
import re
import sys
from typing import Any

import structlog

from .settings import Settings, settings as default_settings

REDACTED = "***REDACTED***"

# Lowercased event keys whose values are never written out
SECRET_KEYS = frozenset(
    {
        "authorization",
        "apikey",
        "api_key",
        "x-api-key",
        "x_api_key",
        "service_role_key",
        "stripe_secret_key",
        "access_token",
        "token",
        "password",
    }
)

SECRET_PATTERNS = (
    re.compile(r"dbp_[0-9a-f]{16,}"),  # user webhook API keys
    re.compile(r"sk_(?:live|test)_[0-9A-Za-z]{8,}"),  # Stripe secret keys
    re.compile(r"eyJ[\w-]{10,}\.[\w-]{10,}\.[\w-]{10,}"),  # JWTs, incl. platform keys
    re.compile(r"(?i)bearer\s+\S+"),
)

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def redact_value(value: Any) -> Any:
    if isinstance(value, str):
        for pattern in SECRET_PATTERNS:
            value = pattern.sub(REDACTED, value)
        return value
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SECRET_KEYS else redact_value(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [redact_value(v) for v in value]
    return value


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor masking credentials before rendering."""
    return redact_value(event_dict)


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog over stdlib logging for the service."""
    settings = settings or default_settings
    level = getattr(logging, settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    # Engine echo is already controlled by DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.debug
        else structlog.processors.JSONRenderer()
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
    ]
    if settings.debug:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )
        processors.append(structlog.processors.StackInfoRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=settings.app_name, environment=settings.environment
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def add_request_context(request_id: str, **context: Any) -> None:
    """Replace per-request log context, keeping service-level bindings."""
    structlog.contextvars.unbind_contextvars("request_id", "method", "path")
    structlog.contextvars.bind_contextvars(request_id=request_id, **context)
