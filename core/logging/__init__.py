# Structured logging with channel tagging
import sys
import logging
import structlog
from typing import Optional, Dict, Any

from core.config.settings import Settings
from .channels import LogChannel, get_channel_for_component

# Global flag to prevent duplicate logging configuration
_logging_configured = False

DEFAULT_REDACT_KEYS = {
    "authorization", "access_token", "accesstoken", "access-token",
    "api_key", "api_secret", "password", "secret", "token",
}


def _make_redactor(keys):
    keys_to_redact = {k.lower() for k in keys}

    def _redact(obj):
        if isinstance(obj, dict):
            out = {}
            for k, v in obj.items():
                if isinstance(k, str) and k.lower() in keys_to_redact:
                    out[k] = "[REDACTED]"
                else:
                    out[k] = _redact(v)
            return out
        if isinstance(obj, list):
            return [_redact(v) for v in obj]
        return obj

    def redact_sensitive(logger, name, event_dict):
        """Redact sensitive fields from event dict recursively."""
        return _redact(event_dict)

    return redact_sensitive


def _make_standard_context(settings: Settings):
    env = getattr(settings.environment, "value", str(settings.environment))

    def add_standard_context(logger, name, event_dict):
        """Bind standard context fields once from settings."""
        event_dict.setdefault("app", settings.app_name)
        event_dict.setdefault("env", env)
        return event_dict

    return add_standard_context


def configure_logging(settings: Settings, force: bool = False) -> None:
    """Configure stdlib logging and structlog from settings."""
    global _logging_configured

    # Prevent duplicate configuration
    if _logging_configured and not force:
        return

    level = settings.logging.level.upper()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=force,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.logging.json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _make_standard_context(settings),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            _make_redactor(settings.logging.redact_keys or DEFAULT_REDACT_KEYS),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    _logging_configured = True


def get_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    logger = structlog.get_logger(name)
    if component:
        channel = get_channel_for_component(component)
        logger = logger.bind(component=component, channel=channel.value)
    return logger


def get_channel_logger(name: str, channel: LogChannel) -> structlog.BoundLogger:
    """Get a logger for a specific channel."""
    return structlog.get_logger(name).bind(channel=channel.value)


def get_trading_logger_safe(name: str) -> structlog.BoundLogger:
    """Get a trading logger safely."""
    return get_channel_logger(name, LogChannel.TRADING)


def get_api_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an API logger safely."""
    return get_channel_logger(name, LogChannel.API)


def get_audit_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an audit logger safely."""
    return get_channel_logger(name, LogChannel.AUDIT)


def get_error_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an error logger safely."""
    return get_channel_logger(name, LogChannel.ERROR)


def bind_account_context(logger: structlog.BoundLogger, client_id: Optional[str]) -> structlog.BoundLogger:
    """Bind the linked client id to a logger, if any."""
    if not client_id:
        return logger
    ctx: Dict[str, Any] = {"client_id": client_id}
    return logger.bind(**ctx)


# Export all functions
__all__ = [
    "configure_logging",
    "get_logger",
    "get_channel_logger",
    "get_trading_logger_safe",
    "get_api_logger_safe",
    "get_audit_logger_safe",
    "get_error_logger_safe",
    "bind_account_context",
    "LogChannel",
]
