"""
Cooperative cancellation for conversion jobs.

A ``CancellationTokenSource`` owns the cancelled flag; the tokens it hands out
are read-only views passed down into the converter, which checks them before
issuing every query.

Usage:
    source = CancellationTokenSource()
    converter.convert(sink, cancellation_token=source.token)
    ...
    source.cancel()   # from another thread
"""

import logging
import threading
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class OperationCancelledException(Exception):
    """Raised when an operation observes a cancelled token."""

    def __init__(self, message: str = "Operation was cancelled") -> None:
        super().__init__(message)


@runtime_checkable
class CancellationToken(Protocol):
    """Protocol for cancellation tokens."""

    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        ...

    def throw_if_cancelled(self) -> None:
        """Raise exception if cancelled."""
        ...


class _SourceToken:
    """Token bound to a ``CancellationTokenSource``."""

    def __init__(self, event: threading.Event) -> None:
        self._event = event

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def throw_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledException()


class CancellationTokenSource:
    """
    Thread-safe owner of a cancellation flag.

    Attributes:
        token: Read-only token observing this source.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.token = _SourceToken(self._event)

    def cancel(self, reason: Optional[str] = None) -> None:
        """Request cancellation. Safe to call more than once."""
        if not self._event.is_set():
            logger.info(f"Cancellation requested{': ' + reason if reason else ''}")
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class NeverCancelledToken:
    """Token used when the caller does not supply one."""

    def is_cancelled(self) -> bool:
        return False

    def throw_if_cancelled(self) -> None:
        return None
