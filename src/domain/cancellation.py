"""
Cancel scopes - Deadline-bearing, cancellable operation tokens.

A CancelScope is created once per inbound request and passed as the first
argument to every repository and collaborator call. Adapters call check()
before doing work and bound any waiting by remaining().
"""

import threading
import time
from typing import Any

from .exceptions import OperationCancelled


class CancelScope:
    """
    Cancellation and deadline shared by all operations of one request.

    Child scopes created by bind() share the parent's deadline and
    cancellation flag. shielded() detaches from both.
    """

    def __init__(
        self,
        deadline: float | None = None,
        *,
        transaction: Any = None,
        _event: threading.Event | None = None,
    ) -> None:
        # deadline is expressed on the time.monotonic() clock
        self._deadline = deadline
        self._event = _event if _event is not None else threading.Event()
        self.transaction = transaction

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelScope":
        """Create a scope that expires ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self) -> None:
        """Cancel this scope and every child bound to it."""
        self._event.set()

    @property
    def cancel_called(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        """
        Raise OperationCancelled when the scope is no longer live.

        Raises:
            OperationCancelled: If cancel() was called or the deadline passed
        """
        if self._event.is_set():
            raise OperationCancelled("Operation cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelled("Operation deadline exceeded")

    def bind(self, transaction: Any) -> "CancelScope":
        """Return a child scope carrying a transaction handle."""
        return CancelScope(self._deadline, transaction=transaction, _event=self._event)

    def shielded(self, grace: float | None = None) -> "CancelScope":
        """
        Return a scope unaffected by this scope's cancellation or deadline.

        Args:
            grace: Optional fresh deadline, in seconds from now
        """
        deadline = None if grace is None else time.monotonic() + grace
        return CancelScope(deadline, transaction=self.transaction)
