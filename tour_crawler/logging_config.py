"""
Structured logging configuration for the crawler.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple
import json

# Context keys passed through ``extra={...}`` and the short label the
# console formatter shows for each
CONTEXT_FIELDS: Dict[str, str] = {
    "source": "source",
    "url": "url",
    "depth": "depth",
    "http_code": "http",
    "visited": "visited",
    "extracted": "extracted",
    "queued": "queued",
}

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("aiohttp.access", "httpx", "httpcore", "hpack")

MAX_URL_LENGTH = 60


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Known context fields present on a log record."""
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers and log files."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_context(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # Non-ASCII titles are written as is
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line output for the console."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%H:%M:%S")
        line = (
            f"{color}{timestamp} {record.levelname:<7}{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )

        context = record_context(record)
        if context:
            parts = []
            for key, value in context.items():
                value = str(value)
                if key == "url" and len(value) > MAX_URL_LENGTH:
                    value = value[:MAX_URL_LENGTH - 3] + "..."
                parts.append(f"{CONTEXT_FIELDS[key]}={value}")
            line += f" [{' '.join(parts)}]"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


class SourceLogger(logging.LoggerAdapter):
    """
    Adds the crawled source's name to every record.

    Context given per call is merged over the bound one.
    """

    def __init__(self, logger: logging.Logger, source: str):
        super().__init__(logger, {"source": source})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging for the crawler.

    Args:
        level: Log level name for the ``crawler`` logger tree
        json_format: Write JSON lines to the console instead of colored text
        log_file: Also append JSON lines to this file

    Returns:
        The ``crawler`` logger
    """
    crawler_logger = logging.getLogger("crawler")
    crawler_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    crawler_logger.handlers.clear()
    crawler_logger.propagate = False

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(JsonFormatter() if json_format else ReadableFormatter())
    crawler_logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JsonFormatter())
        crawler_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return crawler_logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``crawler`` namespace."""
    return logging.getLogger(f"crawler.{name}")


def get_source_logger(name: str, source: str) -> SourceLogger:
    """Logger that tags records with a source name."""
    return SourceLogger(get_logger(name), source)
