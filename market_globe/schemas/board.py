from pydantic import BaseModel

from market_globe.schemas.quote import Quote


class MarkerSize(BaseModel):
    size: int
    radius: float
    font_size: int


class Viewport(BaseModel):
    width: int = 0
    height: int = 0


class BoardSnapshot(BaseModel):
    quotes: list[Quote]
    positions: dict[str, tuple[float, float]]
    changed_symbols: list[str]
    transitioning: bool
    is_refreshing: bool
    error: str | None = None
    last_updated: int | None = None
    is_mock: bool
    viewport: Viewport
    marker: MarkerSize
