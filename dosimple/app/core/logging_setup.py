"""
Logging configuration for DoSimple.
Call configure_logging() once at application startup.
"""
from __future__ import annotations

import logging
import re
import sys

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "dosimple-console"


class _SecretRedactionFilter(logging.Filter):
    """Mask values that follow password, token or secret markers in a record."""

    _PATTERN = re.compile(
        r"(?P<key>\b\w*(?:password|token|secret)\w*)(?P<sep>\s*[=:]\s*)(?P<value>[^\s,;&]+)",
        re.IGNORECASE,
    )
    _MASK = "***"

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self._PATTERN.sub(
            lambda match: f"{match['key']}{match['sep']}{self._MASK}", message
        )
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(level: str = "INFO", *, debug: bool = False) -> None:
    """
    Install a single console handler on the root logger.
    Safe to call more than once: an existing DoSimple handler is replaced.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(_SecretRedactionFilter())
    root.addHandler(handler)

    # Keep third-party libraries readable
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if debug else logging.WARNING
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)

    logging.captureWarnings(True)
