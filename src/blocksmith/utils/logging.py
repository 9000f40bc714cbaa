"""Structured logging setup for Blocksmith.

Logs are JSON lines in ~/.cache/blocksmith/logs/blocksmith.log. Set
BLOCKSMITH_LOG_LEVEL=DEBUG to record every engine no-op and draft flush.
"""

import structlog
from pathlib import Path
from typing import Any, Optional
import os


LOG_DIR = Path.home() / ".cache" / "blocksmith" / "logs"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def resolve_level(value: Optional[str]) -> str:
    """Normalise a BLOCKSMITH_LOG_LEVEL value, falling back to INFO."""
    level = (value or "INFO").strip().upper()
    return level if level in LEVELS else "INFO"


def configure_logging(log_dir: Optional[Path] = None) -> Path:
    """Route structlog output to the Blocksmith log file.

    Returns:
        Path of the log file
    """
    log_dir = LOG_DIR if log_dir is None else log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "blocksmith.log"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            resolve_level(os.environ.get("BLOCKSMITH_LOG_LEVEL"))
        ),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=True,
    )
    return log_file


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
