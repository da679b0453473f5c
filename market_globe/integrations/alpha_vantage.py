from __future__ import annotations

import time
from typing import Any, Optional

from market_globe.errors import PerSymbolError
from market_globe.integrations.http_transport import RetryingHttpTransport
from market_globe.schemas.quote import Quote, QuoteSpec


def parse_percent(raw: Any) -> float:
    """Parse a literal percentage such as ``"1.23%"``."""
    text = str(raw).strip().replace("%", "")
    return float(text)


class AlphaVantageClient:
    """Secondary provider: one GLOBAL_QUOTE request per symbol."""

    source = "secondary"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://www.alphavantage.co",
        transport: Optional[RetryingHttpTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.transport = transport or RetryingHttpTransport(log_tag="AV")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def cancel(self) -> None:
        self.transport.cancel()

    def fetch_symbol(self, spec: QuoteSpec) -> Quote:
        payload = self.transport.get_json(
            f"{self.base_url}/query",
            params={"function": "GLOBAL_QUOTE", "symbol": spec.symbol, "apikey": self.api_key},
        )
        quote = payload.get("Global Quote") if isinstance(payload, dict) else None
        if not quote:
            raise PerSymbolError(spec.symbol, "missing Global Quote in response")

        try:
            change_pct = round(parse_percent(quote["10. change percent"]), 2)
            price = float(quote["05. price"])
            volume = int(float(quote.get("06. volume") or 0))
        except (KeyError, TypeError, ValueError) as exc:
            raise PerSymbolError(spec.symbol, f"invalid Global Quote fields: {exc}") from exc

        return Quote.from_spec(
            spec,
            price=price,
            change_pct=change_pct,
            volume=volume,
            source="secondary",
            ts=int(time.time()),
        )
