"""Cooperative cancellation shared by the CLI, engines and adapters.

A ``CancellationToken`` wraps a ``threading.Event``. Tokens form a tree:
cancelling a parent cancels every child, cancelling a child never touches
the parent. The CLI owns the root token (tripped by SIGINT/SIGTERM); each
parallel run derives a child for stop-on-failure so that a failing service
stops its own run without cancelling the caller.

Tokens may also carry a deadline (monotonic clock). A token past its
deadline reports ``cancelled`` even if nobody called ``cancel()``.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class CancellationToken:
    """Thread-safe, hierarchical cancellation signal.

    Example:
        >>> root = CancellationToken()
        >>> run = root.child()
        >>> run.cancel()
        >>> run.cancelled, root.cancelled
        (True, False)
    """

    def __init__(
        self,
        parent: CancellationToken | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._parent = parent
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self.reason: str | None = None

        if parent is not None:
            parent.add_callback(self._cancel_from_parent)

    def _cancel_from_parent(self) -> None:
        self.cancel(self._parent.reason if self._parent else None)

    def cancel(self, reason: str | None = None) -> None:
        """Trip the token. Idempotent; callbacks fire once."""
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def remaining(self) -> float | None:
        """Seconds until the nearest deadline in the chain, or None."""
        own = None
        if self._deadline is not None:
            own = max(0.0, self._deadline - time.monotonic())
        inherited = self._parent.remaining if self._parent is not None else None
        if own is None:
            return inherited
        if inherited is None:
            return own
        return min(own, inherited)

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancellation (immediately if already cancelled)."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Forget ``callback``; a no-op if it already ran or was never added."""
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def child(self, *, timeout: float | None = None) -> CancellationToken:
        return CancellationToken(self, timeout=timeout)

    def detach(self) -> None:
        """Unhook from the parent so a long-lived parent does not keep this token alive.

        A detached token still reports the parent's state through
        ``cancelled`` but no longer receives the parent's callbacks.
        """
        if self._parent is not None:
            self._parent.remove_callback(self._cancel_from_parent)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses. Returns ``cancelled``."""
        remaining = self.remaining
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)
        self._event.wait(timeout)
        return self.cancelled

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled}, reason={self.reason!r})"


__all__ = ["CancellationToken"]
