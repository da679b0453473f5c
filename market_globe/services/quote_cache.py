from __future__ import annotations

import random
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

from pydantic import BaseModel

from market_globe.config.settings import Settings, get_settings
from market_globe.errors import (
    CacheManagerClosedError,
    QuoteNotFoundError,
    QuotesUnavailableError,
)
from market_globe.integrations.alpha_vantage import AlphaVantageClient
from market_globe.integrations.fmp_rest import FmpRestClient
from market_globe.integrations.http_transport import RetryingHttpTransport
from market_globe.schemas.quote import CacheStatus, Quote
from market_globe.services.catalog import QuoteCatalog, default_catalog
from market_globe.services.scheduler import ScheduledTask


class CacheEntry(BaseModel):
    quotes: list[Quote] | None = None
    last_fetch_time: float = 0.0
    is_refreshing: bool = False
    last_error: str | None = None
    backup_quotes: list[Quote] | None = None


def generate_synthetic_batch(
    catalog: QuoteCatalog,
    *,
    rng: random.Random | None = None,
    ts: int | None = None,
) -> list[Quote]:
    rand = rng or random.Random()
    now = int(time.time()) if ts is None else ts
    return [
        Quote.from_spec(
            spec,
            price=float(rand.randrange(1000, 6000)),
            change_pct=round(rand.uniform(-2.0, 2.0), 2),
            volume=0,
            source="synthetic",
            ts=now,
        )
        for spec in catalog
    ]


class CacheManager:
    """Single shared quote cache with single-flight refresh and tiered fallback.

    Lifecycle: ``create()`` builds the provider clients from settings,
    ``refresh()`` forces a fetch, ``shutdown()`` cancels every scheduled task and
    any backoff wait still pending in the provider transports.

    Fallback order when the primary provider fails: last good batch (served
    stale), then the secondary provider when it is configured and at least one
    symbol resolves, then a synthetic batch that is kept and reused.
    """

    def __init__(
        self,
        *,
        primary,
        secondary=None,
        catalog: QuoteCatalog | None = None,
        freshness_window_sec: float = 15.0,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
        max_secondary_workers: int = 8,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.catalog = catalog or default_catalog
        self.freshness_window_sec = freshness_window_sec
        self._clock = clock
        self._rng = rng or random.Random()
        self.max_secondary_workers = max(int(max_secondary_workers), 1)

        self._lock = threading.Lock()
        self._entry = CacheEntry()
        self._pending: Future | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._closed = False

        self.primary_calls = 0
        self.primary_failures = 0
        self.cache_hits = 0
        self.coalesced_calls = 0
        self.stale_served = 0
        self.secondary_batches = 0
        self.synthetic_batches = 0

    @classmethod
    def create(cls, settings: Settings | None = None, *, session=None, **kwargs) -> "CacheManager":
        settings = settings or get_settings()

        def _transport(tag: str) -> RetryingHttpTransport:
            return RetryingHttpTransport(
                session=session,
                timeout_sec=settings.HTTP_TIMEOUT_SEC,
                max_retries=settings.HTTP_MAX_RETRIES,
                retry_base_delay_sec=settings.HTTP_RETRY_BASE_DELAY_SEC,
                log_tag=tag,
            )

        catalog = kwargs.get("catalog") or default_catalog
        manager = cls(
            primary=FmpRestClient(
                settings.FMP_API_KEY,
                base_url=settings.FMP_BASE_URL,
                transport=_transport("FMP"),
                catalog=catalog,
            ),
            secondary=AlphaVantageClient(
                settings.ALPHA_VANTAGE_API_KEY,
                base_url=settings.ALPHA_VANTAGE_BASE_URL,
                transport=_transport("AV"),
            ),
            freshness_window_sec=settings.QUOTE_FRESHNESS_SEC,
            **kwargs,
        )
        if settings.QUOTE_PRELOAD_SYNTHETIC:
            manager.preload_synthetic()
        return manager

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_refreshing(self) -> bool:
        return self._entry.is_refreshing

    def refresh(self) -> list[Quote]:
        return self.get_quotes(force_refresh=True)

    def get_quotes(self, force_refresh: bool = False) -> list[Quote]:
        with self._lock:
            now = self._clock()
            entry = self._entry
            if (
                not force_refresh
                and entry.quotes is not None
                and now - entry.last_fetch_time < self.freshness_window_sec
            ):
                self.cache_hits += 1
                return entry.quotes

            pending = self._pending
            if pending is not None:
                self.coalesced_calls += 1
                owner = False
            else:
                pending = Future()
                self._pending = pending
                entry.is_refreshing = True
                owner = True

        if not owner:
            return pending.result()

        try:
            batch = self._refresh(now, force_refresh)
        except Exception as exc:
            pending.set_exception(exc)
            raise
        else:
            pending.set_result(batch)
            return batch
        finally:
            if not pending.done():
                pending.set_exception(QuotesUnavailableError("refresh aborted"))
            with self._lock:
                self._entry.is_refreshing = False
                self._pending = None

    def _refresh(self, now: float, force_refresh: bool) -> list[Quote]:
        self.primary_calls += 1
        try:
            batch = self.primary.fetch_batch(force_fresh=force_refresh)
        except Exception as exc:
            return self._fallback(exc)

        with self._lock:
            self._entry.quotes = batch
            self._entry.last_fetch_time = now
            self._entry.last_error = None
        print(f"[QUOTE][primary_fetch_ok] count={len(batch)}", flush=True)
        return batch

    def _fallback(self, exc: Exception) -> list[Quote]:
        self.primary_failures += 1
        with self._lock:
            self._entry.last_error = str(exc) or exc.__class__.__name__
            cached = self._entry.quotes
        print(f"[QUOTE][primary_fetch_error] error_type={exc.__class__.__name__} error={exc}", flush=True)

        if cached is not None:
            self.stale_served += 1
            print(f"[QUOTE][fallback] tier=stale_cache count={len(cached)}", flush=True)
            return cached

        if self.secondary is not None and getattr(self.secondary, "configured", False):
            merged = self._fetch_secondary()
            if merged is not None:
                self.secondary_batches += 1
                print(f"[QUOTE][fallback] tier=secondary count={len(merged)}", flush=True)
                return merged
        else:
            print("[QUOTE][fallback_skip] tier=secondary reason=not_configured", flush=True)

        return self._synthetic_backup()

    def _fetch_secondary(self) -> list[Quote] | None:
        specs = self.catalog.list_all()
        if not specs:
            return None

        workers = min(len(specs), self.max_secondary_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="secondary-quote") as pool:
            futures = [(spec, pool.submit(self.secondary.fetch_symbol, spec)) for spec in specs]
            out: list[Quote] = []
            failed = 0
            for spec, future in futures:
                try:
                    out.append(future.result())
                except Exception as exc:
                    failed += 1
                    print(f"[QUOTE][secondary_symbol_error] symbol={spec.symbol} error={exc}", flush=True)
                    out.append(Quote.error_from_spec(spec, source="secondary"))

        if failed == len(specs):
            print(f"[QUOTE][secondary_fetch_error] failed={failed}", flush=True)
            return None
        return out

    def _synthetic_backup(self) -> list[Quote]:
        with self._lock:
            backup = self._entry.backup_quotes
            if backup is None:
                try:
                    backup = generate_synthetic_batch(self.catalog, rng=self._rng)
                except Exception as exc:
                    raise QuotesUnavailableError("synthetic quote generation failed") from exc
                self._entry.backup_quotes = backup
                self.synthetic_batches += 1
        print(f"[QUOTE][fallback] tier=synthetic count={len(backup)}", flush=True)
        return backup

    def get_quote(self, symbol: str) -> Quote:
        for quote in self.get_quotes():
            if quote.symbol == symbol:
                return quote

        try:
            return self.primary.fetch_quote(symbol)
        except QuoteNotFoundError:
            raise
        except Exception as exc:
            print(f"[QUOTE][single_fetch_error] symbol={symbol} error={exc}", flush=True)
            raise QuoteNotFoundError(f"no quote for {symbol}") from exc

    def preload_synthetic(self) -> None:
        with self._lock:
            if self._entry.backup_quotes is None:
                self._entry.backup_quotes = generate_synthetic_batch(self.catalog, rng=self._rng)
                self.synthetic_batches += 1

    def clear(self) -> None:
        with self._lock:
            self._entry.quotes = None
            self._entry.last_fetch_time = 0.0
            self._entry.backup_quotes = None
            self._entry.last_error = None
        print("[QUOTE][cache_cleared]", flush=True)

    def cache_status(self) -> CacheStatus:
        now = self._clock()
        with self._lock:
            entry = self._entry
            return CacheStatus(
                has_cached_data=entry.quotes is not None,
                last_fetch_time=entry.last_fetch_time,
                is_refreshing=entry.is_refreshing,
                has_error=entry.last_error is not None,
                error_message=entry.last_error,
                data_age_sec=(now - entry.last_fetch_time) if entry.last_fetch_time else None,
            )

    def metrics(self) -> dict[str, int | bool]:
        return {
            "primary_calls": self.primary_calls,
            "primary_failures": self.primary_failures,
            "cache_hits": self.cache_hits,
            "coalesced_calls": self.coalesced_calls,
            "stale_served": self.stale_served,
            "secondary_batches": self.secondary_batches,
            "synthetic_batches": self.synthetic_batches,
            "is_refreshing": self._entry.is_refreshing,
        }

    def schedule(
        self,
        name: str,
        delay_sec: float,
        fn: Callable[[], None],
        *,
        interval: bool = False,
    ) -> ScheduledTask:
        task = ScheduledTask(name, delay_sec, fn, interval=interval)
        with self._lock:
            if self._closed:
                raise CacheManagerClosedError(f"cannot schedule {name!r} after shutdown")
            previous = self._tasks.pop(name, None)
            self._tasks[name] = task
        if previous is not None:
            previous.cancel()
        return task.start()

    def cancel(self, name: str) -> bool:
        with self._lock:
            task = self._tasks.pop(name, None)
        if task is None:
            return False
        task.cancel()
        return True

    def scheduled(self) -> list[str]:
        with self._lock:
            return [name for name, task in self._tasks.items() if not task.cancelled]

    def shutdown(self, timeout_sec: float = 1.0) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            tasks = list(self._tasks.values())
            self._tasks.clear()

        for task in tasks:
            task.cancel()
        for client in (self.primary, self.secondary):
            cancel = getattr(client, "cancel", None)
            if callable(cancel):
                cancel()
        for task in tasks:
            task.join(timeout=timeout_sec)
        print(f"[QUOTE][shutdown] cancelled_tasks={len(tasks)}", flush=True)
