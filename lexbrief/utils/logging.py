"""Structured logging setup using structlog.

One shared processor chain feeds either a coloured ConsoleRenderer
(development) or a JSONRenderer (production, or ``json_output=True``).
``APP_ENV=production`` in the environment also selects JSON.

The chain redacts anything shaped like an OpenAI API key before rendering:
SDK error strings end up in ``error=`` fields of ingestion and composition
log lines, and those are shipped off the box in production.

Standard-library ``logging`` is routed through the same formatter so that
openai, httpx and aiosqlite output looks identical.  Their per-request
chatter is held at WARNING unless lexbrief itself runs at DEBUG.
"""

import logging
import os
import re
import sys

import structlog

_API_KEY = re.compile(r"sk-[A-Za-z0-9_\-]{8,}")
_REDACTED = "sk-***"

# Libraries that log every HTTP request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite")


def redact_api_keys(
    _logger: object, _method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """structlog processor: mask API-key-shaped substrings in string values."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "sk-" in value:
            event_dict[key] = _API_KEY.sub(_REDACTED, value)
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output regardless of ``APP_ENV``.

    Returns:
        A configured structlog BoundLogger.
    """
    level = log_level.upper()
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_api_keys,
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared_processors,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
