"""Logging configuration for gitlab-tree.

The interactive UI owns the terminal, so it logs to a file; the
non-interactive commands log to stderr.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional


# Patterns that match GitLab credentials in log messages and tracebacks.
_SECRET_PATTERNS = [
    re.compile(r"\bglpat-[a-zA-Z0-9_\-]{8,}"),             # Personal access tokens
    re.compile(r'(?i)(private-token[=:]\s*)[^\s,\'"]+'),   # Header echoes
    re.compile(                                             # key=value secrets
        r'(?i)((?:token|password|authorization)[=:]\s*)[^\s,\'"]{8,}'
    ),
]

_REDACTED = "***REDACTED***"


class _SecretFilter(logging.Filter):
    """Redact potential secrets from log messages and exception text."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._redact(str(record.msg))
        if isinstance(record.args, tuple):
            record.args = tuple(
                self._redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        if record.exc_text:
            record.exc_text = self._redact(record.exc_text)
        return True

    @staticmethod
    def _redact(text: str) -> str:
        for pattern in _SECRET_PATTERNS:
            text = pattern.sub(
                lambda m: m.group(1) + _REDACTED if m.lastindex else _REDACTED,
                text,
            )
        return text


def setup_logging(log_level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """Configure application-wide logging.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to INFO.
        log_file: Write records to this file instead of stderr. Parent
                  directories are created as needed.
    """
    level = (log_level or "INFO").upper()

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(_SecretFilter())
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Reduce noise from third-party libraries.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Logging configured: level=%s file=%s", level, log_file)
