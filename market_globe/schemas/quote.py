from __future__ import annotations

import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RISE_COLOR = "#f44336"
FALL_COLOR = "#4caf50"
NEUTRAL_COLOR = "#999999"

QuoteSource = Literal["primary", "secondary", "synthetic"]


def direction_color(is_positive: bool) -> str:
    # red for gains, green for losses
    return RISE_COLOR if is_positive else FALL_COLOR


class QuoteSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    display_name: str
    location: tuple[float, float]

    @property
    def latitude(self) -> float:
        return self.location[0]

    @property
    def longitude(self) -> float:
        return self.location[1]


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    display_name: str
    location: tuple[float, float]
    price: float | None = None
    change_pct: float = 0.0
    is_positive: bool = True
    color: str = RISE_COLOR
    volume: int = Field(default=0, ge=0)
    source: QuoteSource = "primary"
    error: bool = False
    ts: int

    @classmethod
    def from_spec(
        cls,
        spec: QuoteSpec,
        *,
        price: float | None,
        change_pct: float,
        source: QuoteSource,
        volume: int = 0,
        ts: int | None = None,
        is_positive: bool | None = None,
    ) -> "Quote":
        """Build a quote from the catalog entry's documented fields only.

        Direction defaults to the sign of ``change_pct`` before rounding.
        """
        positive = change_pct >= 0 if is_positive is None else is_positive
        return cls(
            symbol=spec.symbol,
            name=spec.name,
            display_name=spec.display_name,
            location=spec.location,
            price=price,
            change_pct=round(change_pct, 2) + 0.0,
            is_positive=positive,
            color=direction_color(positive),
            volume=max(int(volume or 0), 0),
            source=source,
            ts=int(time.time()) if ts is None else ts,
        )

    @classmethod
    def error_from_spec(cls, spec: QuoteSpec, *, source: QuoteSource, ts: int | None = None) -> "Quote":
        return cls(
            symbol=spec.symbol,
            name=spec.name,
            display_name=spec.display_name,
            location=spec.location,
            price=0.0,
            change_pct=0.0,
            is_positive=False,
            color=NEUTRAL_COLOR,
            volume=0,
            source=source,
            error=True,
            ts=int(time.time()) if ts is None else ts,
        )

    @property
    def is_mock(self) -> bool:
        return self.source == "synthetic"

    @property
    def change_display(self) -> str:
        sign = "+" if self.is_positive else ""
        return f"{sign}{self.change_pct:.2f}%"


QuoteBatch = list[Quote]


class CacheStatus(BaseModel):
    has_cached_data: bool
    last_fetch_time: float
    is_refreshing: bool
    has_error: bool
    error_message: str | None = None
    data_age_sec: float | None = None
