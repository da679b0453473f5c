class QuoteProviderError(Exception):
    """Base error for quote provider calls."""


class TransportError(QuoteProviderError):
    """Timeout, network failure or HTTP error status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code >= 500


class MalformedResponseError(QuoteProviderError):
    pass


class PerSymbolError(QuoteProviderError):
    def __init__(self, symbol: str, message: str) -> None:
        super().__init__(f"{symbol}: {message}")
        self.symbol = symbol


class QuotesUnavailableError(Exception):
    pass


class QuoteNotFoundError(Exception):
    pass


class CacheManagerClosedError(RuntimeError):
    pass
