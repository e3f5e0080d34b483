"""Centralized logging configuration using Loguru with Pino-compatible output.

Usage:
    from flowaudit.utils.logging import logger
    logger.info("Message")
    logger.debug("Debug message")  # Only shows if FLOWAUDIT_LOG_LEVEL=DEBUG

Environment Variables:
    FLOWAUDIT_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    FLOWAUDIT_LOG_JSON: 0|1 (default: 0, human-readable)
    FLOWAUDIT_LOG_FILE: path to log file (optional, always NDJSON)
    FLOWAUDIT_REQUEST_ID: correlation ID carried on every JSON record
"""

import json
import os
import sys
import uuid
from pathlib import Path

from loguru import logger

logger.remove()

PINO_LEVELS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

_log_level = os.environ.get("FLOWAUDIT_LOG_LEVEL", "INFO").upper()
_json_mode = os.environ.get("FLOWAUDIT_LOG_JSON", "0") == "1"
_log_file = os.environ.get("FLOWAUDIT_LOG_FILE")
_request_id = os.environ.get("FLOWAUDIT_REQUEST_ID") or str(uuid.uuid4())


def _pino_record(record) -> dict:
    """Convert a loguru record into a Pino-shaped dict."""
    pino_log = {
        "level": PINO_LEVELS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
        "request_id": record["extra"].get("request_id", _request_id),
    }

    for key, value in record["extra"].items():
        if key != "request_id":
            pino_log[key] = value

    if record["exception"]:
        exc = record["exception"]
        pino_log["err"] = {
            "type": exc.type.__name__ if exc.type else "Error",
            "message": str(exc.value) if exc.value else "",
        }

    return pino_log


def pino_compatible_sink(message):
    """Write log records to stdout as Pino-compatible NDJSON."""
    # Never call logger.* inside a sink: infinite recursion.
    sys.stdout.write(json.dumps(_pino_record(message.record), default=str) + "\n")
    sys.stdout.flush()


_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")
logger.level("CRITICAL", color="<red><bold>")

if _json_mode:
    logger.add(pino_compatible_sink, level=_log_level, colorize=False)
else:
    logger.add(
        sys.stderr,
        level=_log_level,
        format=_human_format,
        colorize=None,
    )

if _log_file:

    def _file_pino_sink(message):
        """Append Pino-format JSON to the configured log file."""
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(_pino_record(message.record), default=str) + "\n")

    logger.add(_file_pino_sink, level="DEBUG")


def configure_file_logging(log_dir: Path, level: str = "DEBUG") -> None:
    """Add rotating file handler for persistent logs.

    Args:
        log_dir: Directory for log files (e.g., Path(".flowaudit"))
        level: Minimum log level for file output
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "flowaudit.log"

    logger.add(
        log_file,
        rotation="10 MB",
        retention="7 days",
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )


def get_request_id() -> str:
    """Get the current request ID for correlation."""
    return _request_id


__all__ = [
    "logger",
    "configure_file_logging",
    "get_request_id",
]
