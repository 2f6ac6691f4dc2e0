"""Structured logging for the webhook pipeline.

One JSON line per pipeline step in production (console output in debug).
Every line emitted while a webhook event is being handled carries that
event's ``event_id`` and ``event_type`` plus the request correlation ID, so a
delivery can be followed from verification through the last email. Signing
secrets, API keys and raw event payloads never reach the output.
"""

import logging
import logging.config
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from asgi_correlation_id.context import correlation_id

REDACTED = "[redacted]"

# Keys whose values must never be written out
SENSITIVE_KEYS = frozenset(
    {
        "api_key",
        "authorization",
        "body",
        "payload",
        "secret",
        "sig_header",
        "stripe_signature",
        "webhook_secret",
    }
)

# Chatty libraries used by the pipeline, kept at warning level or above
QUIET_LOGGERS = {
    "uvicorn.access": "WARNING",
    "httpx": "WARNING",
    "stripe": "WARNING",
    "weasyprint": "ERROR",
    "fontTools": "ERROR",
}


def add_correlation_id(logger, method, event_dict):
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def redact_sensitive(logger, method, event_dict):
    """Replace secret-bearing values with a fixed marker."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


@contextmanager
def bind_event_context(event_id: str, event_type: str) -> Iterator[None]:
    """Attach the webhook event identity to every log line inside the block."""
    with structlog.contextvars.bound_contextvars(event_id=event_id, event_type=event_type):
        yield


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install the processor chain for structlog and the stdlib bridge.

    Must run before other orderhook imports: structlog caches the chain on
    first use.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        redact_sensitive,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "pipeline": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "pipeline",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level},
        "loggers": {name: {"level": level} for name, level in QUIET_LOGGERS.items()},
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
