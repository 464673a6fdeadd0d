"""
Shared HTTP plumbing for bibliographic connectors.

Every request goes through the provider's rate limiter, a tenacity retry loop
for transient failures, and the provider's circuit breaker.
"""

from __future__ import annotations

import asyncio
import logging
import os
import ssl
import time
from typing import Any, List, Optional, Protocol

import aiohttp
import certifi
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from evidence_integrity.models import VerificationQuery, VerifiedCitationData
from evidence_integrity.search.exceptions import (
    DatabaseSearchError,
    DatabaseUnavailableError,
    ForbiddenError,
    InvalidQueryError,
    NetworkError,
    ParsingError,
)
from evidence_integrity.search.rate_limiter import RateLimiter
from evidence_integrity.utils.circuit_breaker import CircuitBreaker
from evidence_integrity.utils.structured_log import log_api_call

logger = logging.getLogger(__name__)


def _ssl_context() -> ssl.SSLContext | bool:
    """Certifi CA bundle, or False when EVIDENCE_SSL_SKIP_VERIFY is set."""
    if os.getenv("EVIDENCE_SSL_SKIP_VERIFY", "").lower() in ("1", "true", "yes"):
        return False
    return ssl.create_default_context(cafile=certifi.where())


def tcp_connector_with_certifi() -> aiohttp.TCPConnector:
    return aiohttp.TCPConnector(ssl=_ssl_context())


class BibliographicProvider(Protocol):
    """What the verifier needs from a provider."""

    name: str

    async def lookup_doi(self, doi: str) -> Optional[VerifiedCitationData]: ...

    async def search(self, query: VerificationQuery, rows: int = 5) -> List[VerifiedCitationData]: ...


class BibliographicConnector:
    """
    Base class for Crossref and OpenAlex connectors.

    Subclasses build URLs and map records; this class owns the request path.
    """

    name = "base"
    base_url = ""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        contact_email: str,
        user_agent: str = "evidence-integrity/0.1",
        timeout: float = 30.0,
        max_attempts: int = 3,
        circuit_breaker: Optional[CircuitBreaker] = None,
        retry_wait: Any = None,
    ):
        """
        Initialize connector.

        Args:
            rate_limiter: Bucket shared by every call to this provider
            contact_email: Sent as ``mailto`` for the polite pool
            user_agent: Product token for the User-Agent header
            timeout: Total seconds per HTTP request
            max_attempts: Attempts for retryable failures (429, 5xx, network)
            circuit_breaker: Optional breaker wrapping the whole retry loop
            retry_wait: tenacity wait strategy (default: exponential backoff)
        """
        self.rate_limiter = rate_limiter
        self.contact_email = contact_email
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.circuit_breaker = circuit_breaker
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=1, max=10)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": f"{self.user_agent} (mailto:{self.contact_email})",
            "Accept": "application/json",
        }

    @staticmethod
    def _to_record(raw: dict[str, Any]) -> VerifiedCitationData:
        raise NotImplementedError

    def _parse_record(self, raw: dict[str, Any]) -> VerifiedCitationData:
        """Map one provider record, raising ParsingError when it does not fit the model."""
        try:
            return self._to_record(raw)
        except (ValidationError, TypeError, ValueError, AttributeError) as exc:
            raise ParsingError(f"{self.name} returned a malformed record: {exc}") from exc

    def _require_searchable(self, query: VerificationQuery) -> None:
        if not (query.title or query.authors):
            raise InvalidQueryError(f"{self.name} search needs a title or authors")

    async def _get_json(self, url: str, params: Optional[dict[str, str]] = None) -> Optional[dict[str, Any]]:
        """
        GET a JSON document.

        Returns:
            Parsed body, or None on HTTP 404

        Raises:
            DatabaseSearchError: On exhausted retries or non-retryable failures
            CircuitBreakerOpenError: If the provider's breaker is open
        """
        if self.circuit_breaker is not None:
            return await self.circuit_breaker.call(self._get_json_with_retry, url, params)
        return await self._get_json_with_retry(url, params)

    async def _get_json_with_retry(
        self, url: str, params: Optional[dict[str, str]]
    ) -> Optional[dict[str, Any]]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type((NetworkError, DatabaseUnavailableError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self._request(url, params)
        return None

    async def _request(self, url: str, params: Optional[dict[str, str]]) -> Optional[dict[str, Any]]:
        await self.rate_limiter.acquire()
        started = time.monotonic()
        try:
            async with aiohttp.ClientSession(
                headers=self.headers, connector=tcp_connector_with_certifi()
            ) as session:
                async with session.get(
                    url, params=params, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    latency_ms = int((time.monotonic() - started) * 1000)
                    if response.status == 404:
                        log_api_call(self.name, "not_found", call_type="http", latency_ms=latency_ms)
                        return None
                    if response.status == 403:
                        raise ForbiddenError(f"{self.name} returned 403 for {url}")
                    if response.status == 429 or response.status >= 500:
                        raise DatabaseUnavailableError(f"{self.name} returned {response.status}")
                    if response.status != 200:
                        body = await response.text()
                        raise DatabaseSearchError(f"{self.name} API error {response.status}: {body[:500]}")
                    try:
                        payload = await response.json(content_type=None)
                    except ValueError as exc:
                        raise ParsingError(f"{self.name} returned invalid JSON: {exc}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            log_api_call(self.name, "error", call_type="http", error=str(exc) or type(exc).__name__)
            raise NetworkError(f"{self.name} request failed: {exc or type(exc).__name__}") from exc
        except DatabaseSearchError as exc:
            log_api_call(self.name, "error", call_type="http", error=str(exc))
            raise

        if not isinstance(payload, dict):
            raise ParsingError(f"{self.name} returned {type(payload).__name__}, expected an object")
        log_api_call(self.name, "success", call_type="http", latency_ms=int((time.monotonic() - started) * 1000))
        return payload
