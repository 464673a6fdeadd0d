"""
EvidencePipeline: the operation surface offered to the host application.

Components are constructed explicitly and passed in; ``from_settings`` does the
standard wiring from a ``SettingsConfig``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from evidence_integrity.citation.attachment import CitationAttachmentService
from evidence_integrity.citation.claims import ClaimExtractor
from evidence_integrity.citation.store import JsonCitationStore
from evidence_integrity.models import (
    AttachmentOptions,
    AttachmentResult,
    CacheStats,
    DocumentReviewQueue,
    ProviderRateLimit,
    RAGSource,
    RelocationResult,
    ReviewItem,
    ReviewScanOptions,
    SettingsConfig,
    VerificationQuery,
    VerificationResult,
)
from evidence_integrity.quality.confidence import ConfidenceScorer, HeuristicConfidenceScorer
from evidence_integrity.review.triage import ReviewTriage
from evidence_integrity.search.cache import VerificationCache
from evidence_integrity.search.crossref import CrossrefConnector
from evidence_integrity.search.exceptions import DatabaseSearchError
from evidence_integrity.search.openalex import OpenAlexConnector
from evidence_integrity.search.rate_limiter import build_rate_limiters
from evidence_integrity.utils.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from evidence_integrity.utils.structured_log import bind_document, unbind_document
from evidence_integrity.verification.verifier import CitationVerifier

logger = logging.getLogger(__name__)


class EvidencePipeline:
    def __init__(
        self,
        verifier: CitationVerifier,
        store: JsonCitationStore,
        attachment: CitationAttachmentService,
        triage: ReviewTriage,
        settings: Optional[SettingsConfig] = None,
    ):
        self.verifier = verifier
        self.store = store
        self.attachment = attachment
        self.triage = triage
        self.settings = settings or SettingsConfig()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[SettingsConfig] = None,
        scorer: Optional[ConfidenceScorer] = None,
    ) -> "EvidencePipeline":
        """Wire rate limiters, breakers, connectors, cache, verifier, store and triage."""
        settings = settings or SettingsConfig()
        v = settings.verification
        breaker_config = CircuitBreakerConfig(
            failure_threshold=v.circuit_breaker.failure_threshold,
            success_threshold=v.circuit_breaker.success_threshold,
            timeout=v.circuit_breaker.timeout,
            expected_exception=DatabaseSearchError,
        )

        rate_limiters = build_rate_limiters(
            {name: v.rate_limits.get(name) or ProviderRateLimit() for name in ("openalex", "crossref")}
        )

        def connector_kwargs(name: str) -> dict:
            return {
                "rate_limiter": rate_limiters[name],
                "contact_email": v.contact_email,
                "user_agent": v.user_agent,
                "timeout": v.request_timeout,
                "max_attempts": v.max_attempts,
                "circuit_breaker": CircuitBreaker(name, breaker_config),
            }

        openalex = OpenAlexConnector(api_key=v.openalex_api_key, **connector_kwargs("openalex"))
        crossref = CrossrefConnector(**connector_kwargs("crossref"))
        cache = VerificationCache(
            cache_dir=v.cache_dir,
            doi_ttl_seconds=v.doi_ttl_seconds,
            search_ttl_seconds=v.search_ttl_seconds,
        )
        verifier = CitationVerifier(
            cache,
            openalex=openalex,
            crossref=crossref,
            accept_threshold=v.accept_threshold,
            search_rows=v.search_rows,
            verify_timeout=v.verify_timeout,
        )

        store = JsonCitationStore()
        attachment = CitationAttachmentService(
            store,
            extractor=ClaimExtractor(max_sources_per_claim=settings.attachment.max_citations_per_claim),
        )
        triage = ReviewTriage(
            verifier,
            store,
            scorer=scorer or HeuristicConfidenceScorer(settings.review.confidence_threshold),
            confidence_threshold=settings.review.confidence_threshold,
            include_partial_citations=settings.review.include_partial_citations,
            max_items=settings.review.max_items,
        )
        return cls(verifier, store, attachment, triage, settings=settings)

    async def initialize(self) -> int:
        """Prepare the verification cache; returns expired entries evicted."""
        return await self.verifier.initialize()

    # Verification

    async def verify_citation(self, query: VerificationQuery) -> VerificationResult:
        return await self.verifier.verify(query)

    async def verify_citations(self, queries: Sequence[VerificationQuery]) -> Dict[int, VerificationResult]:
        return await self.verifier.verify_many(queries)

    async def clear_cache(self) -> int:
        return await self.verifier.clear_cache()

    async def get_cache_stats(self) -> CacheStats:
        return await self.verifier.cache_stats()

    # Attachment

    def _attachment_defaults(self) -> AttachmentOptions:
        a = self.settings.attachment
        return AttachmentOptions(
            insert_markers=a.insert_markers,
            min_relevance=a.min_relevance,
            max_citations_per_claim=a.max_citations_per_claim,
        )

    async def attach_citations(
        self,
        document_path: str,
        generated_text: str,
        sources: Sequence[RAGSource],
        options: Optional[AttachmentOptions] = None,
    ) -> AttachmentResult:
        bind_document(document_path)
        try:
            return await self.attachment.attach_citations(
                document_path, generated_text, sources, options or self._attachment_defaults()
            )
        finally:
            unbind_document()

    async def relocate_citations_after_edit(self, document_path: str, new_text: str) -> RelocationResult:
        bind_document(document_path)
        try:
            return await self.attachment.relocate_citations_after_edit(document_path, new_text)
        finally:
            unbind_document()

    # Review

    async def scan_document(
        self, document_path: str, content: str, options: Optional[ReviewScanOptions] = None
    ) -> DocumentReviewQueue:
        bind_document(document_path)
        try:
            return await self.triage.scan(document_path, content, options)
        finally:
            unbind_document()

    def get_queue(self, document_path: str) -> Optional[DocumentReviewQueue]:
        return self.triage.get_queue(document_path)

    def get_pending_items(self, document_path: str) -> List[ReviewItem]:
        return self.triage.get_pending_items(document_path)

    def accept_item(self, document_path: str, item_id: str) -> Optional[ReviewItem]:
        return self.triage.accept_item(document_path, item_id)

    def edit_item(self, document_path: str, item_id: str, edited_text: str) -> Optional[ReviewItem]:
        return self.triage.edit_item(document_path, item_id, edited_text)

    def remove_item(self, document_path: str, item_id: str, reason: Optional[str] = None) -> Optional[ReviewItem]:
        return self.triage.remove_item(document_path, item_id, reason)

    def dismiss_item(self, document_path: str, item_id: str) -> Optional[ReviewItem]:
        return self.triage.dismiss_item(document_path, item_id)

    def set_confidence_threshold(self, threshold: float) -> None:
        self.triage.set_confidence_threshold(threshold)

    def get_confidence_threshold(self) -> float:
        return self.triage.get_confidence_threshold()
