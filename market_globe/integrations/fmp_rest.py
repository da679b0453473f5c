from __future__ import annotations

import math
import time
from typing import Any, Dict, Optional

from market_globe.errors import MalformedResponseError, QuoteNotFoundError
from market_globe.integrations.http_transport import RetryingHttpTransport
from market_globe.schemas.quote import Quote, QuoteSpec
from market_globe.services.catalog import QuoteCatalog, default_catalog


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def resolve_change_pct(record: Dict[str, Any]) -> float:
    """Percent change for one batch record.

    A ``changesPercentage`` field is taken as reported. Without it, ``change`` is
    an absolute delta and the percentage is derived from the previous close.
    """
    reported = _to_number(record.get("changesPercentage"))
    if reported is not None:
        return reported

    price = _to_number(record.get("price"))
    change = _to_number(record.get("change"))
    if price and change:
        previous_close = price - change
        if previous_close == 0:
            return 0.0
        return change / previous_close * 100
    return change or 0.0


class FmpRestClient:
    """Primary provider: one batched call for every catalog index."""

    source = "primary"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://financialmodelingprep.com",
        transport: Optional[RetryingHttpTransport] = None,
        catalog: Optional[QuoteCatalog] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.transport = transport or RetryingHttpTransport(log_tag="FMP")
        self.catalog = catalog or default_catalog

    def cancel(self) -> None:
        self.transport.cancel()

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {"apikey": self.api_key or ""}
        params.update(extra)
        return params

    def fetch_batch(self, force_fresh: bool = False) -> list[Quote]:
        params = self._params(_ts=int(time.time() * 1000)) if force_fresh else self._params()
        payload = self.transport.get_json(f"{self.base_url}/stable/batch-index-quotes", params=params)
        if not isinstance(payload, list) or not payload:
            raise MalformedResponseError("batch quote payload is empty or not a list")

        now = int(time.time())
        quotes: list[Quote] = []
        for record in payload:
            if not isinstance(record, dict):
                continue
            spec = self.catalog.get(str(record.get("symbol", "")))
            if spec is None:
                continue
            quotes.append(
                Quote.from_spec(
                    spec,
                    price=_to_number(record.get("price")),
                    change_pct=resolve_change_pct(record),
                    volume=int(_to_number(record.get("volume")) or 0),
                    source="primary",
                    ts=now,
                )
            )

        if not quotes:
            raise MalformedResponseError("batch quote payload has no catalog symbols")
        return quotes

    def fetch_quote(self, symbol: str) -> Quote:
        payload = self.transport.get_json(f"{self.base_url}/api/v3/quote/{symbol}", params=self._params())
        if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
            raise QuoteNotFoundError(f"no quote for {symbol}")

        record = payload[0]
        spec = self.catalog.get(symbol)
        if spec is None:
            spec = QuoteSpec(symbol=symbol, name=symbol, display_name=symbol, location=(0.0, 0.0))
        return Quote.from_spec(
            spec,
            price=_to_number(record.get("price")),
            change_pct=_to_number(record.get("changesPercentage")) or 0.0,
            volume=int(_to_number(record.get("volume")) or 0),
            source="primary",
        )
