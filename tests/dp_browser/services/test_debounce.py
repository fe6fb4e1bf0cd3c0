from __future__ import annotations

import threading

from dp_browser.services.debounce import Debouncer, Scheduler, SearchDebouncer, ThreadingScheduler


class ManualScheduler(Scheduler):
    """Fires timers only when the test says so"""

    def __init__(self):
        self.pending = {}
        self._next = 0

    def schedule(self, delay_ms, callback):
        self._next += 1
        self.pending[self._next] = (delay_ms, callback)
        return self._next

    def cancel(self, handle):
        self.pending.pop(handle, None)

    def run_all(self):
        for handle in list(self.pending):
            _, callback = self.pending.pop(handle)
            callback()


def test_last_value_wins():
    scheduler = ManualScheduler()
    seen = []
    debouncer = Debouncer(seen.append, delay_ms=100, scheduler=scheduler)

    debouncer.push("a")
    debouncer.push("ab")
    debouncer.push("abc")

    assert len(scheduler.pending) == 1
    assert seen == []

    scheduler.run_all()
    assert seen == ["abc"]
    assert not debouncer.has_pending


def test_delay_is_passed_to_scheduler():
    scheduler = ManualScheduler()
    debouncer = Debouncer(lambda _v: None, delay_ms=250, scheduler=scheduler)

    debouncer.push(1)

    assert [delay for delay, _ in scheduler.pending.values()] == [250]


def test_flush_delivers_immediately():
    scheduler = ManualScheduler()
    seen = []
    debouncer = Debouncer(seen.append, scheduler=scheduler)

    debouncer.push("x")
    debouncer.flush()

    assert seen == ["x"]
    assert scheduler.pending == {}

    debouncer.flush()
    assert seen == ["x"]


def test_cancel_drops_pending_value():
    scheduler = ManualScheduler()
    seen = []
    debouncer = Debouncer(seen.append, scheduler=scheduler)

    debouncer.push("x")
    debouncer.cancel()
    scheduler.run_all()

    assert seen == []


def test_failing_callback_is_logged(caplog):
    scheduler = ManualScheduler()

    def broken(_value):
        raise ValueError("boom")

    debouncer = Debouncer(broken, scheduler=scheduler)
    debouncer.push("x")
    scheduler.run_all()

    assert "Debounced callback failed" in caplog.text


def test_search_debouncer_strips_text():
    scheduler = ManualScheduler()
    seen = []
    debouncer = SearchDebouncer(seen.append, scheduler=scheduler)

    debouncer.push("  name ")
    scheduler.run_all()
    debouncer.push(None)
    scheduler.run_all()

    assert seen == ["name", ""]


def test_threading_scheduler_fires():
    fired = threading.Event()
    debouncer = Debouncer(lambda _v: fired.set(), delay_ms=10, scheduler=ThreadingScheduler())

    debouncer.push("x")

    assert fired.wait(timeout=2)
