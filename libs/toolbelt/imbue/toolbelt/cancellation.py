import threading
import time
import weakref
from typing import Self

from imbue.toolbelt.primitives import CancelReason


class CancelToken:
    """A thread-safe flag that can be set once, with a reason, to stop waiters early.

    A token becomes done when cancel() is called, when its deadline passes, or
    when its parent becomes done. Deadlines are checked lazily against the
    monotonic clock, so a token never owns a timer or a background thread.
    """

    def __init__(self, deadline: float | None = None) -> None:
        # deadline is an absolute time.monotonic() value
        self._deadline = deadline
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: CancelReason | None = None
        self._children: weakref.WeakSet[CancelToken] = weakref.WeakSet()

    @classmethod
    def build(cls) -> Self:
        return cls()

    @classmethod
    def with_deadline(cls, seconds: float) -> Self:
        """Build a token that becomes done with DEADLINE_EXCEEDED after the given number of seconds."""
        return cls(deadline=time.monotonic() + seconds)

    @classmethod
    def from_parent(cls, parent: "CancelToken", seconds: float | None = None) -> Self:
        """Build a token that is done whenever parent is done, optionally with a tighter deadline."""
        deadlines = [] if parent._deadline is None else [parent._deadline]
        if seconds is not None:
            deadlines.append(time.monotonic() + seconds)
        child = cls(deadline=min(deadlines) if deadlines else None)
        with parent._lock:
            parent_reason = parent._reason
            if parent_reason is None:
                parent._children.add(child)
        if parent_reason is not None:
            child.cancel(parent_reason)
        return child

    @property
    def reason(self) -> CancelReason | None:
        """The reason this token is done, or None while it is still live."""
        self.is_done()
        return self._reason

    def cancel(self, reason: CancelReason = CancelReason.CANCELLED) -> None:
        """Mark the token done. Only the first reason is kept."""
        with self._lock:
            if self._reason is None:
                self._reason = reason
            reason = self._reason
            children = list(self._children)
            self._children.clear()
            self._event.set()
        for child in children:
            child.cancel(reason)

    def is_done(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(CancelReason.DEADLINE_EXCEEDED)
            return True
        return False

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the token is done or timeout seconds pass. Returns whether the token is done."""
        end = None if timeout is None else time.monotonic() + timeout
        while not self.is_done():
            now = time.monotonic()
            remaining_candidates = [t - now for t in (end, self._deadline) if t is not None]
            remaining = min(remaining_candidates) if remaining_candidates else None
            if remaining is not None and remaining <= 0:
                return self.is_done()
            self._event.wait(remaining)
            if end is not None and time.monotonic() >= end:
                return self.is_done()
        return True
