#!/usr/bin/env python3
"""
Run-scoped cancellation token.

A RunContext carries one deadline and a cancellation flag. Worker threads
call check() before and during I/O and size their socket timeouts from
remaining(), so an elapsed deadline aborts outstanding requests instead of
letting them hang. Nested scopes (child()) can only shorten the deadline of
their parent, and cancelling a parent cancels every child.
"""

import threading
import time
import weakref
from typing import Optional

from .errors import DeadlineExceeded, RequestCancelled


class RunContext:
    """Deadline and cancellation flag shared by every worker of a run."""

    def __init__(self, timeout: Optional[float] = None, parent: Optional['RunContext'] = None):
        """
        Create a context.

        Args:
            timeout: Seconds from now until the context expires (None = no limit)
            parent: Enclosing context whose deadline and cancellation are inherited
        """
        self._parent = parent
        self._cancelled = threading.Event()
        # Finished scopes drop out once nothing else references them
        self._children: 'weakref.WeakSet[RunContext]' = weakref.WeakSet()
        self._lock = threading.Lock()

        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

    def child(self, timeout: Optional[float] = None) -> 'RunContext':
        """Derive a nested scope bounded by this context's deadline."""
        scope = RunContext(timeout=timeout, parent=self)
        with self._lock:
            self._children.add(scope)
        if self.cancelled:
            scope.cancel()
        return scope

    def cancel(self):
        """Cancel this context and all contexts derived from it."""
        self._cancelled.set()
        with self._lock:
            children = list(self._children)
        for scope in children:
            scope.cancel()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self):
        """Raise if the context is cancelled or past its deadline."""
        if self.cancelled:
            raise RequestCancelled("run context cancelled")
        if self.expired:
            raise DeadlineExceeded("run context deadline exceeded")

    def sleep(self, seconds: float):
        """Sleep for up to ``seconds``, waking early (and raising) on cancellation."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._cancelled.wait(seconds)
        self.check()
