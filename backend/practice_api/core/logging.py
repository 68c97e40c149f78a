"""
Logging configuration.

Modules log through ``logging.getLogger(__name__)``. ``setup_logging`` installs
a single stream handler whose records carry the current request id and pass
through a redaction filter, so bearer credentials and JWT-shaped strings
never reach the output even if a caller formats them into a message.
"""

import logging
import re
import sys
from typing import Optional

from practice_api.middleware.request_context import get_request_id


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [request_id=%(request_id)s] %(message)s"

REDACTED = "[REDACTED]"

# "Bearer <anything>" and three base64url segments separated by dots
_BEARER_PATTERN = re.compile(r"(?i)bearer\s+[A-Za-z0-9\-_.~+/=]+")
_JWT_PATTERN = re.compile(r"eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]*")
_PEM_PATTERN = re.compile(r"-----BEGIN [A-Z ]+-----.*?-----END [A-Z ]+-----", re.DOTALL)


def redact(text: str) -> str:
    """Mask bearer credentials, JWTs and PEM blocks in ``text``."""
    text = _PEM_PATTERN.sub(REDACTED, text)
    text = _BEARER_PATTERN.sub(f"Bearer {REDACTED}", text)
    return _JWT_PATTERN.sub(REDACTED, text)


class RequestIdFilter(logging.Filter):
    """Attach the current request id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact credentials from the fully formatted message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Safe to call more than once: the handler installed by a previous call is
    replaced rather than duplicated.

    Args:
        level: Log level name; defaults to INFO
    """
    root = logging.getLogger()
    root.setLevel((level or "INFO").upper())

    for handler in list(root.handlers):
        if getattr(handler, "_practice_api", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler._practice_api = True  # type: ignore[attr-defined]
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    root.addHandler(handler)
