"""Cancellation and deadline handles passed to storage and service calls."""

from __future__ import annotations

import threading
import time
from typing import Optional


class ContextCancelledError(Exception):
    """The operation's context was cancelled."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceededError(TimeoutError):
    """The operation's context passed its deadline."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class Context:
    """A cancellable handle with an optional deadline and an optional parent.

    A context reports an error once it, or any of its ancestors, has been
    cancelled or has passed its deadline. The first error seen is kept.
    """

    def __init__(
        self,
        parent: Optional["Context"] = None,
        deadline: Optional[float] = None,
        *,
        cancellable: bool = True,
    ) -> None:
        self._parent = parent
        self._deadline = deadline
        self._cancellable = cancellable
        self._err: Optional[Exception] = None
        self._lock = threading.Lock()

    @property
    def deadline(self) -> Optional[float]:
        """The monotonic-clock deadline, or None when there is none."""
        return self._deadline

    def cancel(self) -> None:
        """Cancel the context; the root background context ignores this."""
        if not self._cancellable:
            return
        with self._lock:
            if self._err is None:
                self._err = self._resolve() or ContextCancelledError()

    def error(self) -> Optional[Exception]:
        """Return the reason the context ended, or None while it is live."""
        with self._lock:
            if self._err is None:
                self._err = self._resolve()
            return self._err

    def check(self) -> None:
        """Raise the context's error if it has ended."""
        err = self.error()
        if err is not None:
            raise err.with_traceback(None)

    def _resolve(self) -> Optional[Exception]:
        if self._parent is not None:
            parent_err = self._parent.error()
            if parent_err is not None:
                return parent_err
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceededError()
        return None

    def __enter__(self) -> "Context":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


_BACKGROUND = Context(cancellable=False)


def background() -> Context:
    """Return the root context, which never ends."""
    return _BACKGROUND


def with_cancel(parent: Context) -> Context:
    """Return a child of ``parent`` that can be cancelled on its own."""
    return Context(parent, parent.deadline)


def with_timeout(parent: Context, seconds: float) -> Context:
    """Return a child of ``parent`` that ends after ``seconds``."""
    deadline = time.monotonic() + seconds
    if parent.deadline is not None:
        deadline = min(deadline, parent.deadline)
    return Context(parent, deadline)