"""
Structured logging configuration for the Apple Mail MCP server.

Logs go to stderr so that the stdio transport keeps stdout for protocol
messages only.
"""

import logging
import sys
from typing import Any, Dict, List, Optional

import structlog

# osascript stderr can echo script text or message bodies back
MAX_FIELD_LENGTH = 500

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "mcp.server.lowlevel.server", "sse_starlette")


def clip_long_values(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Shorten long string fields so mail content never lands in the log whole."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_FIELD_LENGTH:
            event_dict[key] = f"{value[:MAX_FIELD_LENGTH]}... ({len(value)} chars)"
    return event_dict


def build_processors(enable_json: bool) -> List[Any]:
    """Processor chain ending in a JSON or console renderer."""
    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        # service name bound in configure_logging
        structlog.contextvars.merge_contextvars,
        clip_long_values,
    ]

    if enable_json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # Desktop MCP clients write stderr to a plain log file
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def configure_logging(
    service_name: str = "apple-mail-mcp",
    log_level: str = "INFO",
    enable_json: bool = False
) -> None:
    """
    Configure structured logging for the server.

    Args:
        service_name: Bound to every log line as `service`
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_json: JSON lines instead of console output
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level, force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=build_processors(enable_json),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_script_execution(
    operation: str,
    duration_ms: float,
    success: bool,
    logger: Optional[structlog.stdlib.BoundLogger] = None
) -> None:
    """Log a single osascript run with consistent fields."""
    if logger is None:
        logger = get_logger("applescript")

    logger.debug(
        "AppleScript executed",
        operation=operation,
        duration_ms=round(duration_ms, 1),
        success=success,
    )
