"""Single-use, idempotent, broadcast cancellation signal.

One signal is created per online search. Any number of triggers may close
it, from any thread, any number of times; only the first close has an
effect. Every listener registered on the signal runs exactly once: at close
time, or immediately if the signal is already closed when it registers.
"""

import logging
import threading
from collections.abc import Callable

from src.core.errors import SearchCancelled

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class CancellationSignal:
    """Broadcast "stop" indicator tied to one search invocation.

    Usage::

        signal = CancellationSignal()
        unlink = signal.add_listener(lambda: task.cancel())
        ...
        signal.close()   # from the cancel button
        signal.close()   # from navigating away: no-op
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._listeners: dict[int, Listener] = {}
        self._next_id = 0

    @property
    def closed(self) -> bool:
        return self._event.is_set()

    def close(self) -> bool:
        """Close the signal. Returns True only for the call that closed it."""
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            listeners = list(self._listeners.values())
            self._listeners.clear()

        for listener in listeners:
            _notify(listener)
        return True

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for the close. Returns a function that unregisters it."""
        with self._lock:
            if not self._event.is_set():
                key = self._next_id
                self._next_id += 1
                self._listeners[key] = listener
                return lambda: self._remove(key)

        _notify(listener)
        return lambda: None

    def raise_if_closed(self, stage: str = "") -> None:
        """Checkpoint: raise SearchCancelled if the signal has been closed."""
        if self._event.is_set():
            msg = "search cancelled by user"
            if stage:
                msg = f"{msg} {stage}"
            raise SearchCancelled(msg)

    def _remove(self, key: int) -> None:
        with self._lock:
            self._listeners.pop(key, None)


def _notify(listener: Listener) -> None:
    try:
        listener()
    except Exception:
        logger.exception("Cancellation listener failed")
