"""
Source Fetcher - Provider Batch Retrieval
=========================================

HTTP client for the monthly fund batch with:
- Async requests via httpx
- Exponential backoff retries (tenacity) for transient failures only
- Immediate failure on client-side (4xx) rejections
- A single-shot health probe that never raises
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception, stop_after_attempt, wait_exponential

from ingestor.core.config import IngestSettings
from ingestor.core.errors import ConfigurationError, SourceError, SourceRejectedError, SourceUnavailableError
from ingestor.sources.morningstar_parser import extract_records
from ingestor.utils.logger import get_logger

log = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


def is_retryable(exc: BaseException) -> bool:
    """Server-side, network and timeout failures are worth another attempt."""
    return isinstance(exc, (SourceUnavailableError, httpx.TimeoutException, httpx.NetworkError))


class SourceFetcher:
    """
    Fetches the raw monthly batch from the external provider.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        *,
        health_url: Optional[str] = None,
        timeout: float = 30.0,
        health_timeout: float = 5.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        source_name: str = "morningstar",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.health_url = health_url or None
        self.timeout = timeout
        self.health_timeout = health_timeout
        self.max_attempts = max(int(max_attempts), 1)
        self.base_delay = max(float(base_delay), 0.0)
        self.source_name = source_name
        self.last_attempts = 0
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None
        log.info(
            f"SourceFetcher initialized for {source_name}, timeout={timeout}s, "
            f"max_attempts={self.max_attempts}, base_delay={self.base_delay}s"
        )

    @classmethod
    def from_settings(cls, settings: IngestSettings, **kwargs) -> "SourceFetcher":
        return cls(
            settings.api_url,
            settings.api_key,
            health_url=settings.health_url,
            timeout=settings.timeout_seconds,
            health_timeout=settings.health_timeout_seconds,
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_base_delay,
            source_name=settings.source_name,
            **kwargs,
        )

    async def __aenter__(self) -> "SourceFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            client_kwargs: Dict[str, Any] = {
                "timeout": httpx.Timeout(self.timeout),
                "follow_redirects": True,
            }
            if self._transport is not None:
                client_kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**client_kwargs)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "X-API-Key": self.api_key,
        }

    def _require_configuration(self) -> None:
        if not self.api_url or not self.api_key:
            log.warning(f"{self.source_name} API credentials not configured")
            raise ConfigurationError(
                f"{self.source_name} API is not configured",
                key="MORNINGSTAR_API_KEY" if self.api_url else "MORNINGSTAR_API_URL",
                section="source",
            )

    async def _request_once(self) -> Any:
        response = await self._get_client().get(self.api_url, headers=self._headers())
        status = response.status_code

        if status >= 500:
            raise SourceUnavailableError(
                f"{self.source_name} returned {status}", source=self.source_name, status_code=status
            )
        if 400 <= status < 500:
            raise SourceRejectedError(
                f"{self.source_name} rejected the request with {status}", source=self.source_name, status_code=status
            )
        if not response.is_success:
            raise SourceError(
                f"Unexpected {status} response from {self.source_name}", source=self.source_name, status_code=status
            )

        try:
            return response.json()
        except ValueError as exc:
            raise SourceError(
                f"Malformed JSON from {self.source_name}: {exc}", source=self.source_name, status_code=status, cause=exc
            ) from exc

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        log.warning(
            f"Fetch attempt {retry_state.attempt_number}/{self.max_attempts} failed: {exc}. "
            f"Retrying in {delay:.2f}s..."
        )

    async def fetch_batch(self) -> List[Any]:
        """
        Fetch the latest monthly batch.

        Raises:
            ConfigurationError: source URL or key missing
            SourceRejectedError: 4xx answer, not retried
            SourceUnavailableError: transient failures outlived max_attempts
            SourceError: any other failure, not retried
        """
        self._require_configuration()
        self.last_attempts = 0
        log.info(f"Fetching data from {self.source_name} API...")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            retry=retry_if_exception(is_retryable),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    self.last_attempts = attempt.retry_state.attempt_number
                    payload = await self._request_once()
        except RetryError as exc:
            cause = exc.last_attempt.exception()
            log.error(f"Failed to fetch from {self.source_name} after {self.max_attempts} attempts: {cause}")
            raise SourceUnavailableError(
                f"{self.source_name} service unavailable after {self.max_attempts} attempts: {cause}",
                source=self.source_name,
                status_code=getattr(cause, "status_code", None),
                cause=cause,
            ) from cause
        except SourceError:
            raise
        except httpx.HTTPError as exc:
            log.error(f"Unclassified error while fetching from {self.source_name}: {exc}")
            raise SourceError(
                f"{self.source_name} request failed: {exc}", source=self.source_name, cause=exc
            ) from exc

        records = extract_records(payload, source=self.source_name)
        if not records:
            log.warning(f"{self.source_name} returned an empty batch")
        else:
            log.info(f"Fetched {len(records)} funds from {self.source_name}")
        return records

    async def health_check(self) -> Dict[str, Any]:
        """Probe the health endpoint once. Never raises."""
        status: Dict[str, Any] = {
            "source": self.source_name,
            "reachable": False,
            "status_code": None,
            "latency_ms": None,
            "error": None,
        }
        url = self.health_url or self.api_url
        if not url:
            status["error"] = "not configured"
            return status

        log.info(f"Checking {self.source_name} API connection...")
        started = time.perf_counter()
        try:
            response = await self._get_client().get(url, headers=self._headers(), timeout=self.health_timeout)
        except Exception as exc:  # noqa: BLE001
            status["latency_ms"] = round((time.perf_counter() - started) * 1000, 1)
            status["error"] = f"{type(exc).__name__}: {exc}"
            log.error(f"{self.source_name} API health check failed: {exc}")
            return status

        status["latency_ms"] = round((time.perf_counter() - started) * 1000, 1)
        status["status_code"] = response.status_code
        status["reachable"] = response.is_success
        if not response.is_success:
            status["error"] = f"HTTP {response.status_code}"
        return status


__all__ = ["SourceFetcher", "is_retryable"]
