from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SEARCH_DEBOUNCE_MS = 100


class Scheduler(ABC):
    """
    Minimal timer interface (tk's after/after_cancel, an event loop's
    call_later, or threads).
    """

    @abstractmethod
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        pass

    @abstractmethod
    def cancel(self, handle: Any) -> None:
        pass


class ThreadingScheduler(Scheduler):
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_ms / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: threading.Timer) -> None:
        handle.cancel()


class Debouncer(Generic[T]):
    """
    Delays a callback until input has been quiet for delay_ms. Every push
    restarts the timer and replaces the pending value (last write wins).
    """

    def __init__(
            self,
            callback: Callable[[T], None],
            delay_ms: int = DEFAULT_SEARCH_DEBOUNCE_MS,
            scheduler: Optional[Scheduler] = None,
    ):
        self._callback = callback
        self._delay_ms = delay_ms
        self._scheduler = scheduler or ThreadingScheduler()
        self._handle: Any = None
        self._pending: Optional[T] = None
        self._has_pending = False
        self._lock = threading.Lock()

    @property
    def has_pending(self) -> bool:
        return self._has_pending

    def push(self, value: T) -> None:
        with self._lock:
            self._cancel_handle()
            self._pending = value
            self._has_pending = True
            self._handle = self._scheduler.schedule(self._delay_ms, self._fire)

    def flush(self) -> None:
        """Deliver the pending value now"""
        with self._lock:
            self._cancel_handle()
        self._fire()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_handle()
            self._pending = None
            self._has_pending = False

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None

    def _fire(self) -> None:
        with self._lock:
            if not self._has_pending:
                return
            value = self._pending
            self._pending = None
            self._has_pending = False
            self._handle = None
        try:
            self._callback(value)
        except Exception:
            logger.exception("Debounced callback failed")


class SearchDebouncer(Debouncer[str]):
    """Debounces free-text tree search, normalising the text it delivers"""

    def push(self, value: Optional[str]) -> None:
        super().push((value or "").strip())
