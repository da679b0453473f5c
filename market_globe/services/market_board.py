from __future__ import annotations

import threading
import time
from typing import Callable

from market_globe.config.settings import Settings
from market_globe.errors import CacheManagerClosedError, QuotesUnavailableError
from market_globe.schemas.board import BoardSnapshot, Viewport
from market_globe.schemas.quote import Quote
from market_globe.services.change_detector import diff_quotes
from market_globe.services.layout_engine import marker_size_for_width
from market_globe.services.position_cache import PositionCache
from market_globe.services.quote_cache import CacheManager

UNAVAILABLE_MESSAGE = "Unable to fetch market data. Please try again later."

INITIAL_REFRESH_TASK = "initial-refresh"
BACKGROUND_REFRESH_TASK = "background-refresh"
TRANSITION_RESET_TASK = "transition-reset"


class MarketBoard:
    """Refresh controller feeding the presentation layer.

    Holds the current and previous batch, the changed-symbol highlight and the
    viewport. Timers are scheduled on the CacheManager so ``stop()`` cancels
    them all at once.
    """

    def __init__(
        self,
        manager: CacheManager,
        position_cache: PositionCache | None = None,
        *,
        refresh_interval_sec: float = 120.0,
        transition_reset_sec: float = 1.5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.manager = manager
        self.position_cache = position_cache or PositionCache()
        self.refresh_interval_sec = refresh_interval_sec
        self.transition_reset_sec = transition_reset_sec
        self._clock = clock

        self._lock = threading.Lock()
        self._quotes: list[Quote] = []
        self._previous: list[Quote] = []
        self._changed: set[str] = set()
        self._transitioning = False
        self._refreshing = False
        self._error: str | None = None
        self._last_updated: int | None = None
        self._viewport = Viewport()
        self.initial_loading = True
        self.refresh_count = 0
        self.skipped_ticks = 0

    @classmethod
    def from_settings(cls, manager: CacheManager, settings: Settings) -> "MarketBoard":
        return cls(
            manager,
            refresh_interval_sec=settings.QUOTE_REFRESH_INTERVAL_SEC,
            transition_reset_sec=settings.BOARD_TRANSITION_RESET_SEC,
        )

    @property
    def quotes(self) -> list[Quote]:
        return list(self._quotes)

    @property
    def previous_quotes(self) -> list[Quote]:
        return list(self._previous)

    @property
    def changed_symbols(self) -> set[str]:
        return set(self._changed)

    @property
    def transitioning(self) -> bool:
        return self._transitioning

    @property
    def error(self) -> str | None:
        return self._error

    def refresh(self, force: bool = True) -> bool:
        with self._lock:
            if self._refreshing:
                print("[BOARD][refresh_skip] reason=in_progress", flush=True)
                return False
            self._refreshing = True
            previous = list(self._quotes)

        try:
            data = self.manager.get_quotes(force_refresh=force)
            changed = diff_quotes(previous, data)
            with self._lock:
                self._previous = previous
                self._quotes = list(data)
                self._error = None
                self._last_updated = int(self._clock())
                self.refresh_count += 1
                if changed:
                    self._changed = changed
                    self._transitioning = True
        except QuotesUnavailableError as exc:
            print(f"[BOARD][refresh_error] error={exc}", flush=True)
            with self._lock:
                self._error = UNAVAILABLE_MESSAGE
            return False
        finally:
            with self._lock:
                self._refreshing = False
                self.initial_loading = False

        if changed:
            self._schedule_transition_reset()
        print(f"[BOARD][refresh_ok] count={len(data)} changed={len(changed)}", flush=True)
        return True

    def _schedule_transition_reset(self) -> None:
        try:
            self.manager.schedule(TRANSITION_RESET_TASK, self.transition_reset_sec, self.reset_transition)
        except CacheManagerClosedError:
            self.reset_transition()

    def reset_transition(self) -> None:
        with self._lock:
            self._transitioning = False
            self._changed = set()

    def background_tick(self) -> bool:
        """Refresh unless the cache already holds data younger than half the interval."""
        status = self.manager.cache_status()
        half_interval = self.refresh_interval_sec / 2
        if status.has_cached_data and status.data_age_sec is not None and status.data_age_sec <= half_interval:
            self.skipped_ticks += 1
            print(f"[BOARD][refresh_skip] reason=cache_fresh age={status.data_age_sec:.1f}", flush=True)
            return False
        return self.refresh(force=True)

    def start(self) -> None:
        self.manager.schedule(INITIAL_REFRESH_TASK, 0.0, self.refresh)
        self.manager.schedule(
            BACKGROUND_REFRESH_TASK,
            self.refresh_interval_sec,
            self.background_tick,
            interval=True,
        )
        print(f"[BOARD][start] refresh_interval_sec={self.refresh_interval_sec}", flush=True)

    def stop(self) -> None:
        self.manager.shutdown()
        print("[BOARD][stop]", flush=True)

    def set_viewport(self, width: int, height: int) -> bool:
        viewport = Viewport(width=max(int(width), 0), height=max(int(height), 0))
        with self._lock:
            changed = viewport != self._viewport
            self._viewport = viewport
        if changed:
            self.position_cache.invalidate()
        return changed

    def is_mock(self) -> bool:
        return any(quote.is_mock for quote in self._quotes)

    def snapshot(self) -> BoardSnapshot:
        with self._lock:
            quotes = list(self._quotes)
            viewport = self._viewport
            changed = sorted(self._changed)
            transitioning = self._transitioning
            refreshing = self._refreshing
            error = self._error
            last_updated = self._last_updated

        marker = marker_size_for_width(viewport.width)
        positions: dict[str, tuple[float, float]] = {}
        if quotes and viewport.width > 0 and viewport.height > 0:
            positions = self.position_cache.positions_for(quotes, viewport.width, viewport.height, marker.radius)

        return BoardSnapshot(
            quotes=quotes,
            positions=positions,
            changed_symbols=changed,
            transitioning=transitioning,
            is_refreshing=refreshing,
            error=error,
            last_updated=last_updated,
            is_mock=any(quote.is_mock for quote in quotes),
            viewport=viewport,
            marker=marker,
        )
