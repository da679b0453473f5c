from __future__ import annotations

from market_globe.schemas.quote import QuoteSpec

# Anchors are nudged off the exchange cities so neighbouring markers start apart.
MARKET_INDICES: tuple[QuoteSpec, ...] = (
    QuoteSpec(symbol="^GSPC", name="S&P 500", display_name="S&P 500", location=(40.7128, -73.0060)),
    QuoteSpec(symbol="^DJI", name="Dow Jones", display_name="Dow Jones", location=(39.5, -75.0060)),
    QuoteSpec(symbol="^IXIC", name="Nasdaq", display_name="Nasdaq", location=(41.5, -73.8)),
    QuoteSpec(symbol="^FCHI", name="CAC 40", display_name="CAC 40", location=(48.8566, 2.3522)),
    QuoteSpec(symbol="^GDAXI", name="DAX", display_name="DAX", location=(52.5200, 13.4050)),
    QuoteSpec(symbol="^N225", name="Nikkei 225", display_name="Nikkei 225", location=(35.6762, 142.6503)),
    QuoteSpec(symbol="000001.SS", name="SSE Composite", display_name="Shanghai", location=(32.5, 119.5)),
    QuoteSpec(symbol="399001.SZ", name="SZSE Component", display_name="Shenzhen", location=(22.5431, 116.5)),
    QuoteSpec(symbol="^HSI", name="Hang Seng", display_name="Hang Seng", location=(22.3193, 112.0)),
    QuoteSpec(symbol="^TWII", name="TAIEX", display_name="Taiwan", location=(25.0330, 123.9)),
    QuoteSpec(symbol="^AXJO", name="ASX 200", display_name="ASX 200", location=(-33.8688, 153.5)),
    QuoteSpec(symbol="^STI", name="Straits Times", display_name="Singapore", location=(1.3521, 106.8)),
    QuoteSpec(symbol="^KLSE", name="FTSE Bursa Malaysia KLCI", display_name="Malaysia", location=(3.1390, 103.5)),
    QuoteSpec(symbol="^FTSE", name="FTSE 100", display_name="FTSE 100", location=(51.5074, -0.1278)),
    QuoteSpec(symbol="^STOXX50E", name="Euro Stoxx 50", display_name="Euro 50", location=(50.8503, 4.3517)),
    QuoteSpec(symbol="^BSESN", name="BSE Sensex", display_name="Sensex", location=(19.0760, 72.8777)),
    QuoteSpec(symbol="^NSEI", name="Nifty 50", display_name="Nifty 50", location=(28.6139, 77.2090)),
    QuoteSpec(symbol="^MERV", name="Merval", display_name="Argentina", location=(-34.6037, -58.3816)),
    QuoteSpec(symbol="^BVSP", name="Bovespa", display_name="Brazil", location=(-23.5505, -46.6333)),
    QuoteSpec(symbol="^MXX", name="IPC Mexico", display_name="Mexico", location=(19.4326, -99.1332)),
)


class QuoteCatalog:
    def __init__(self, specs: tuple[QuoteSpec, ...] | list[QuoteSpec] = MARKET_INDICES) -> None:
        self._specs = tuple(specs)
        self._by_symbol = {spec.symbol: spec for spec in self._specs}
        if len(self._by_symbol) != len(self._specs):
            raise ValueError("catalog symbols must be unique")

    def __iter__(self):
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._by_symbol

    def get(self, symbol: str) -> QuoteSpec | None:
        return self._by_symbol.get(symbol)

    def symbols(self) -> list[str]:
        return [spec.symbol for spec in self._specs]

    def list_all(self) -> list[QuoteSpec]:
        return list(self._specs)


default_catalog = QuoteCatalog()
