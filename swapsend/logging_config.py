"""
Log formatting for the CLI.

Every module logs through the standard library; structlog only renders the
records: colored lines at DEBUG, JSON lines otherwise, on stderr so command
output on stdout stays clean.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings


def _renderer(debug: bool) -> structlog.types.Processor:
    if debug:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(log_level: Optional[str] = None) -> None:
    """Install a structlog-rendered handler on the root logger.

    Args:
        log_level: Override log level (default: from settings.log_level)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    debug = level == logging.DEBUG

    pre_chain: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if not debug:
        # ConsoleRenderer prints tracebacks itself
        pre_chain.append(structlog.processors.format_exc_info)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(debug),
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Per-request client logs drown out submission progress
    for name in ("httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
