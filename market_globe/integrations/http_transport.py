from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional

import requests

from market_globe.errors import MalformedResponseError, TransportError


class RetryingHttpTransport:
    """GET-with-JSON helper: bounded timeout, exponential backoff on transport failures."""

    def __init__(
        self,
        *,
        session: Optional[Any] = None,
        timeout_sec: float = 10.0,
        max_retries: int = 2,
        retry_base_delay_sec: float = 1.0,
        sleep_fn: Optional[Callable[[float], None]] = None,
        log_tag: str = "HTTP",
    ) -> None:
        self.session = session or requests
        self.timeout_sec = timeout_sec
        self.max_retries = max(int(max_retries), 0)
        self.retry_base_delay_sec = retry_base_delay_sec
        self.log_tag = log_tag
        self._cancelled = threading.Event()
        self._sleep_fn = sleep_fn or self._wait_or_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def _wait_or_cancel(self, delay_sec: float) -> None:
        if self._cancelled.wait(delay_sec):
            raise TransportError("request cancelled")

    def backoff_delay(self, retry_number: int) -> float:
        # retry_number is 1-based: 1s, 2s, 4s ... for a 1s base
        return self.retry_base_delay_sec * (2 ** (retry_number - 1))

    def _get_once(self, url: str, params: Optional[Dict[str, Any]]) -> Any:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout_sec)
        except requests.Timeout as exc:
            raise TransportError(f"timeout after {self.timeout_sec}s") from exc
        except requests.RequestException as exc:
            raise TransportError(f"network error: {exc}") from exc

        status_code = getattr(response, "status_code", 200)
        if isinstance(status_code, int) and status_code >= 400:
            raise TransportError(f"http status {status_code}", status_code=status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError("response body is not valid JSON") from exc

    def get_json(self, url: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        retries = 0
        while True:
            if self._cancelled.is_set():
                raise TransportError("request cancelled")
            try:
                return self._get_once(url, params)
            except TransportError as exc:
                if not exc.retryable or retries >= self.max_retries or self._cancelled.is_set():
                    raise
                retries += 1
                delay = self.backoff_delay(retries)
                print(
                    f"[{self.log_tag}][retry] attempt={retries} delay={delay} error={exc}",
                    flush=True,
                )
                self._sleep_fn(delay)
