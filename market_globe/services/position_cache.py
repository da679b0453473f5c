from __future__ import annotations

import threading
from typing import Callable, Sequence

from market_globe.schemas.quote import Quote
from market_globe.services.layout_engine import PositionMap, layout_markers


class PositionCache:
    """Keeps the last layout until the symbol set or the viewport changes."""

    def __init__(self, layout_fn: Callable[..., PositionMap] = layout_markers) -> None:
        self._layout_fn = layout_fn
        self._lock = threading.Lock()
        self._positions: PositionMap = {}
        self._dimensions: tuple[float, float, float] | None = None
        self.recompute_count = 0
        self.reuse_count = 0

    @property
    def positions(self) -> PositionMap:
        return dict(self._positions)

    def invalidate(self) -> None:
        with self._lock:
            self._positions = {}
            self._dimensions = None

    def needs_recompute(self, symbols: set[str], dimensions: tuple[float, float, float]) -> bool:
        if not self._positions:
            return True
        if set(self._positions) != symbols:
            return True
        return self._dimensions != dimensions

    def positions_for(
        self,
        quotes: Sequence[Quote],
        width: float,
        height: float,
        radius: float,
    ) -> PositionMap:
        symbols = {quote.symbol for quote in quotes}
        dimensions = (float(width), float(height), float(radius))
        with self._lock:
            if not self.needs_recompute(symbols, dimensions):
                self.reuse_count += 1
                return dict(self._positions)

            reason = "empty" if not self._positions else (
                "symbols" if set(self._positions) != symbols else "viewport"
            )
            self._positions = self._layout_fn(quotes, width, height, radius)
            self._dimensions = dimensions
            self.recompute_count += 1
        print(
            f"[LAYOUT][positions_recompute] reason={reason} symbols={len(symbols)} "
            f"width={width} height={height}",
            flush=True,
        )
        return dict(self._positions)

    def metrics(self) -> dict[str, int]:
        return {
            "cached_positions": len(self._positions),
            "layout_recomputes": self.recompute_count,
            "layout_reuses": self.reuse_count,
        }
