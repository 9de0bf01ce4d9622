"""Shared outbound HTTP policy: request gate, retries and backoff."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Mapping

import httpx

from ..config import settings
from ..errors import ProviderUnavailable

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class RequestGate:
    """Single delay gate acquired before every outbound provider call.

    Each named channel keeps its own minimum interval, and ``global_interval``
    spaces any two calls regardless of channel. The gate is shared by every
    client of an orchestrator so the whole policy lives in one place.
    """

    def __init__(
        self,
        intervals: Mapping[str, float] | None = None,
        global_interval: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.intervals = dict(intervals if intervals is not None else settings.channel_intervals())
        self.global_interval = (
            global_interval if global_interval is not None else settings.global_interval_seconds
        )
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: dict[str, float] = {}
        self._last_any: float | None = None

    def acquire(self, channel: str) -> float:
        """Block until ``channel`` may issue a call. Returns the seconds waited.

        The slot is reserved under the lock and the wait happens outside it,
        so a delay on one channel never holds up callers on another.
        """
        with self._lock:
            now = self._clock()
            ready_at = now
            last = self._last_call.get(channel)
            if last is not None:
                ready_at = max(ready_at, last + self.intervals.get(channel, 0.0))
            if self.global_interval > 0 and self._last_any is not None:
                ready_at = max(ready_at, self._last_any + self.global_interval)
            self._last_call[channel] = ready_at
            self._last_any = ready_at if self._last_any is None else max(self._last_any, ready_at)
        waited = max(0.0, ready_at - now)
        if waited > 0:
            self._sleep(waited)
        return waited


class ProviderTransport:
    """HTTP access for one provider, gated and retried."""

    def __init__(
        self,
        provider: str,
        channel: str,
        gate: RequestGate,
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        headers: Mapping[str, str] | None = None,
        client_factory: Callable[[], httpx.Client] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.channel = channel
        self.gate = gate
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.backoff_seconds
        self.headers = dict(headers or {})
        self._client_factory = client_factory or self._default_client
        self._sleep = sleep

    def _default_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers=self.headers,
        )

    def get_json(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
        return self._request("GET", url, params=params)

    def post_json(self, url: str, payload: Any, params: Mapping[str, Any] | None = None) -> Any:
        return self._request("POST", url, params=params, json=payload)

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        client = self._client_factory()
        try:
            attempt = 0
            while True:
                self.gate.acquire(self.channel)
                try:
                    response = client.request(method, url, **kwargs)
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise ProviderUnavailable(self.provider, f"HTTP {status_code} for {url}") from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailable(
                            self.provider, f"HTTP {status_code} after {self.max_retries} retries"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"{self.provider} returned {status_code}, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries})"
                    )
                    self._sleep(wait_time)
                except (httpx.TimeoutException, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"{self.provider} unreachable after {self.max_retries} retries: {e}")
                        raise ProviderUnavailable(self.provider, str(e) or type(e).__name__) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"{self.provider} network error, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries}): {e}"
                    )
                    self._sleep(wait_time)
                except httpx.HTTPError as e:
                    raise ProviderUnavailable(self.provider, str(e)) from e
                except ValueError as e:
                    # Body was not JSON.
                    raise ProviderUnavailable(self.provider, f"invalid JSON payload: {e}") from e
        finally:
            client.close()
