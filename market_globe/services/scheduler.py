from __future__ import annotations

import threading
from typing import Callable


class ScheduledTask:
    """Cancelable one-shot or fixed-interval callback on a daemon thread."""

    def __init__(
        self,
        name: str,
        delay_sec: float,
        fn: Callable[[], None],
        *,
        interval: bool = False,
    ) -> None:
        self.name = name
        self.delay_sec = max(float(delay_sec), 0.0)
        self.fn = fn
        self.interval = interval
        self.runs = 0
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True, name=f"task-{name}")

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> "ScheduledTask":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while not self._stop.wait(self.delay_sec):
            if self._stop.is_set():
                return
            try:
                self.fn()
            except Exception as exc:
                print(f"[SCHED][task_error] name={self.name} error={exc}", flush=True)
            self.runs += 1
            if not self.interval:
                return
