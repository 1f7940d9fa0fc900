"""
Correlation IDs for comparison runs.

Each DBComparer call runs under its own correlation ID so that the log lines
of one comparison can be told apart from those of concurrent comparisons.
"""

import contextvars
import logging
import uuid
from typing import Optional

logger = logging.getLogger(__name__)

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "dbcomparer_correlation_id",
    default=None
)


def new_correlation_id() -> str:
    """Return a fresh UUID4 correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Correlation ID of the current context, or None outside a comparison."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """
    Set the correlation ID for the current context.

    Returns:
        Token that restores the previous ID when passed to reset_correlation_id

    Raises:
        ValueError: If correlation_id is empty or not a string
    """
    if not correlation_id or not isinstance(correlation_id, str):
        raise ValueError("Correlation ID must be a non-empty string")
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: contextvars.Token) -> None:
    _correlation_id.reset(token)


class CorrelationContext:
    """
    Scope a correlation ID to a block.

    Usage:
        with CorrelationContext() as correlation_id:
            ...
    """

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        if not self.correlation_id:
            self.correlation_id = new_correlation_id()
        self._token = set_correlation_id(self.correlation_id)
        logger.debug(f"Entered correlation context: {self.correlation_id}")
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        reset_correlation_id(self._token)
        self._token = None


def correlation_id_filter(record: logging.LogRecord) -> bool:
    """Logging filter stamping records with the current correlation ID."""
    record.correlation_id = get_correlation_id() or "N/A"
    return True


def setup_correlation_logging(handler: logging.Handler) -> None:
    """Attach the correlation filter to a handler."""
    handler.addFilter(correlation_id_filter)
