"""Logging setup for the clipper API.

All modules log through ``logging.getLogger(__name__)``; structlog renders
those records (console with rich tracebacks, or one JSON object per line)
and adds the request fields bound by the HTTP middleware.
"""

import logging
import sys

import structlog

QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "hpack",
    "google_genai",
    "google_genai.models",
    "urllib3.connectionpool",
    "uvicorn.access",  # Replaced by the request middleware's line
)


def _build_renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.rich_traceback,
    )


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route stdlib logging through structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: JSON lines for log aggregation instead of console output
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,  # request_id, method, path
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _build_renderer(json_output),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def bind_request_context(request_id: str, method: str, path: str) -> None:
    """Attach request fields to every log line emitted while handling it."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)


def clear_request_context() -> None:
    """Drop the fields bound by bind_request_context()."""
    structlog.contextvars.clear_contextvars()
