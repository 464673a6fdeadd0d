"""
Citation verification against Crossref and OpenAlex.

Strategy per query:
1. Cache lookup (a hit is returned with ``from_cache=True``).
2. DOI lookup, Crossref first then OpenAlex, when the query has a valid DOI.
3. Search, OpenAlex first; Crossref is only asked when OpenAlex's best match
   is below the accept threshold. The better of the two wins.

Error results are never cached.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Sequence, Tuple

from evidence_integrity.models import (
    CacheQueryType,
    CacheStats,
    VerificationQuery,
    VerificationResult,
    VerificationSource,
    VerificationStatus,
    VerifiedCitationData,
)
from evidence_integrity.search.base import BibliographicProvider
from evidence_integrity.search.cache import VerificationCache
from evidence_integrity.search.exceptions import DatabaseSearchError
from evidence_integrity.search.identifiers import doi_key, normalize_doi
from evidence_integrity.utils.circuit_breaker import CircuitBreakerOpenError
from evidence_integrity.utils.structured_log import log_verification
from evidence_integrity.verification.scoring import score_match, status_for_confidence

logger = logging.getLogger(__name__)

EMPTY_QUERY_ERROR = "Query has no searchable fields"
DOI_NOT_FOUND_ERROR = "DOI not found in academic databases"
NO_MATCH_ERROR = "No matching work found"

_PROVIDER_ERRORS = (DatabaseSearchError, CircuitBreakerOpenError)

_UNSET = object()


class CitationVerifier:
    """Verify bibliographic queries, caching what providers answer."""

    def __init__(
        self,
        cache: VerificationCache,
        openalex: BibliographicProvider,
        crossref: BibliographicProvider,
        accept_threshold: float = 0.7,
        search_rows: int = 5,
        verify_timeout: Optional[float] = None,
    ):
        """
        Initialize verifier.

        Args:
            cache: Persistent result cache
            openalex: OpenAlex provider (searched first)
            crossref: Crossref provider (asked first for DOIs)
            accept_threshold: First-provider search confidence that skips the second provider
            search_rows: Candidates requested per search
            verify_timeout: Default deadline in seconds for one ``verify`` call
        """
        self.cache = cache
        self.openalex = openalex
        self.crossref = crossref
        self.accept_threshold = accept_threshold
        self.search_rows = search_rows
        self.verify_timeout = verify_timeout

    @property
    def doi_providers(self) -> Tuple[BibliographicProvider, ...]:
        return (self.crossref, self.openalex)

    @property
    def search_providers(self) -> Tuple[BibliographicProvider, ...]:
        return (self.openalex, self.crossref)

    async def initialize(self) -> int:
        """Prepare the cache; returns the number of expired entries evicted."""
        return await self.cache.initialize()

    async def clear_cache(self) -> int:
        return await self.cache.clear()

    async def cache_stats(self) -> CacheStats:
        return await self.cache.stats()

    async def verify(self, query: VerificationQuery, timeout=_UNSET) -> VerificationResult:
        """
        Verify one query.

        Args:
            query: Known bibliographic fields
            timeout: Seconds before giving up (default: the verifier's ``verify_timeout``)

        Returns:
            Result; provider failures come back as status ``error``, never raised
        """
        cached = await self._cache_get(query)
        if cached is not None:
            result = cached.model_copy(update={"from_cache": True})
            self._log(result)
            return result

        deadline = self.verify_timeout if timeout is _UNSET else timeout
        query_type: Optional[CacheQueryType] = None
        try:
            if deadline is not None:
                result, query_type = await asyncio.wait_for(self._run(query), deadline)
            else:
                result, query_type = await self._run(query)
        except asyncio.TimeoutError:
            result = VerificationResult(
                status=VerificationStatus.ERROR,
                confidence=0.0,
                error=f"Verification timed out after {deadline}s",
            )
        except Exception as exc:
            logger.error(f"Verification failed unexpectedly: {exc}", exc_info=True)
            result = VerificationResult(status=VerificationStatus.ERROR, confidence=0.0, error=str(exc))

        if query_type is not None and result.status != VerificationStatus.ERROR:
            await self._cache_put(query, result, query_type)
        self._log(result)
        return result

    async def verify_many(self, queries: Sequence[VerificationQuery]) -> Dict[int, VerificationResult]:
        """Verify queries one after another; keys are input positions."""
        results: Dict[int, VerificationResult] = {}
        for index, query in enumerate(queries):
            results[index] = await self.verify(query)
        return results

    async def _run(self, query: VerificationQuery) -> Tuple[VerificationResult, Optional[CacheQueryType]]:
        if query.is_empty():
            return (
                VerificationResult(status=VerificationStatus.UNVERIFIED, confidence=0.0, error=EMPTY_QUERY_ERROR),
                None,
            )

        if query.doi:
            doi = normalize_doi(query.doi)
            if doi is None:
                logger.info(f"Ignoring malformed DOI {query.doi!r}, falling back to search")
            else:
                failures: list[str] = []
                result = await self._verify_by_doi(doi, failures)
                if result is not None:
                    return result, CacheQueryType.DOI
                if len(failures) == len(self.doi_providers) and not (query.title or query.authors):
                    return (
                        VerificationResult(
                            status=VerificationStatus.ERROR, confidence=0.0, error="; ".join(failures)
                        ),
                        None,
                    )

        if not (query.title or query.authors):
            error = DOI_NOT_FOUND_ERROR if query.doi else EMPTY_QUERY_ERROR
            return (
                VerificationResult(status=VerificationStatus.UNVERIFIED, confidence=0.0, error=error),
                CacheQueryType.DOI if query.doi else None,
            )

        return await self._search(query), CacheQueryType.SEARCH

    async def _verify_by_doi(self, doi: str, failures: list[str]) -> Optional[VerificationResult]:
        for provider in self.doi_providers:
            try:
                record = await provider.lookup_doi(doi)
            except _PROVIDER_ERRORS as exc:
                logger.warning(f"{provider.name} DOI lookup failed for {doi}: {exc}")
                failures.append(f"{provider.name}: {exc}")
                continue
            if record is None or not _matches_doi(record, doi):
                continue
            if record.doi is None:
                record = record.model_copy(update={"doi": doi})
            return VerificationResult(
                status=VerificationStatus.VERIFIED,
                confidence=1.0,
                source=VerificationSource(provider.name),
                matched_data=record,
            )
        return None

    async def _search(self, query: VerificationQuery) -> VerificationResult:
        first_provider, second_provider = self.search_providers
        first = await self._search_provider(first_provider, query)
        if first.status != VerificationStatus.ERROR and first.confidence >= self.accept_threshold:
            return first

        second = await self._search_provider(second_provider, query)
        return max((first, second), key=lambda r: (r.confidence, r.status != VerificationStatus.ERROR))

    async def _search_provider(self, provider: BibliographicProvider, query: VerificationQuery) -> VerificationResult:
        source = VerificationSource(provider.name)
        try:
            candidates = await provider.search(query, rows=self.search_rows)
        except _PROVIDER_ERRORS as exc:
            logger.warning(f"{provider.name} search failed: {exc}")
            return VerificationResult(status=VerificationStatus.ERROR, confidence=0.0, source=source, error=str(exc))

        best: Optional[VerifiedCitationData] = None
        best_confidence = 0.0
        for candidate in candidates:
            confidence = score_match(query, candidate).confidence
            if best is None or confidence > best_confidence:
                best, best_confidence = candidate, confidence

        if best is None or best_confidence <= 0:
            return VerificationResult(
                status=VerificationStatus.UNVERIFIED, confidence=0.0, source=source, error=NO_MATCH_ERROR
            )
        return VerificationResult(
            status=status_for_confidence(best_confidence),
            confidence=best_confidence,
            source=source,
            matched_data=best,
        )

    async def _cache_get(self, query: VerificationQuery) -> Optional[VerificationResult]:
        try:
            return await self.cache.get(query)
        except Exception as exc:
            logger.warning(f"Verification cache read failed, treating as miss: {exc}")
            return None

    async def _cache_put(
        self, query: VerificationQuery, result: VerificationResult, query_type: CacheQueryType
    ) -> None:
        try:
            await self.cache.put(query, result, query_type)
        except Exception as exc:
            logger.warning(f"Verification cache write failed: {exc}")

    @staticmethod
    def _log(result: VerificationResult) -> None:
        log_verification(
            result.status.value,
            result.confidence,
            result.source.value if result.source else None,
            result.from_cache,
            error=result.error,
        )


def _matches_doi(record: VerifiedCitationData, doi: str) -> bool:
    if record.doi:
        return doi_key(record.doi) == doi_key(doi)
    return bool(record.title)

