"""
Review triage: build per-document queues of content needing human review.

A scan flags low-confidence paragraphs and citations that could not be
verified, orders them by urgency and keeps the queue in memory so reviewers can
accept, edit, remove or dismiss items.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from evidence_integrity.citation.store import CitationStoreError, JsonCitationStore
from evidence_integrity.models import (
    Citation,
    CitationReviewItem,
    DocumentReviewQueue,
    LowConfidenceReviewItem,
    ParagraphConfidence,
    QueueSummary,
    QueueSummaryItem,
    ReviewActionType,
    ReviewItem,
    ReviewItemAction,
    ReviewItemStatus,
    ReviewItemType,
    ReviewQueueStats,
    ReviewScanOptions,
    ReviewSource,
    ReviewSourceType,
    VerificationQuery,
    VerificationResult,
    VerificationStatus,
)
from evidence_integrity.quality.confidence import ConfidenceScorer, HeuristicConfidenceScorer
from evidence_integrity.utils.structured_log import log_review_action

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.6
DEFAULT_MAX_ITEMS = 100
PREVIEW_LENGTH = 100

TYPE_PRIORITY = {
    ReviewItemType.UNVERIFIED_CITATION.value: 0,
    ReviewItemType.PARTIAL_CITATION.value: 1,
    ReviewItemType.LOW_CONFIDENCE.value: 2,
}

_ACTION_STATUS = {
    ReviewActionType.ACCEPT: ReviewItemStatus.ACCEPTED,
    ReviewActionType.EDIT: ReviewItemStatus.EDITED,
    ReviewActionType.REMOVE: ReviewItemStatus.REMOVED,
    ReviewActionType.DISMISS: ReviewItemStatus.DISMISSED,
}

_MARKER_NUMBER = re.compile(r"\[(\d+)\]")
_YEAR = re.compile(r"\d{4}")


class Verifier(Protocol):
    async def verify(self, query: VerificationQuery) -> VerificationResult: ...


def calculate_stats(items: List[ReviewItem]) -> ReviewQueueStats:
    stats = ReviewQueueStats(total=len(items))
    for item in items:
        status = ReviewItemStatus(item.status).value
        setattr(stats, status, getattr(stats, status) + 1)
        if item.type == ReviewItemType.LOW_CONFIDENCE.value:
            stats.low_confidence_count += 1
        elif item.type == ReviewItemType.PARTIAL_CITATION.value:
            stats.partial_citation_count += 1
        else:
            stats.unverified_citation_count += 1
    return stats


def _sort_key(item: ReviewItem):
    confidence = item.confidence if item.type == ReviewItemType.LOW_CONFIDENCE.value else 0.0
    return (TYPE_PRIORITY[item.type], confidence)


def paragraph_sources(paragraph: ParagraphConfidence) -> List[ReviewSource]:
    """Placeholder sources for inline ``[n]`` markers, or a generated-content marker."""
    sources = [
        ReviewSource(
            id=f"source-citation-{number}",
            type=ReviewSourceType.CITATION,
            title=f"Citation [{number}]",
            content="Reference content not available",
        )
        for number in _MARKER_NUMBER.findall(paragraph.text)
    ]
    if not sources:
        sources.append(
            ReviewSource(
                id="source-generated",
                type=ReviewSourceType.GENERATED,
                title="AI Generated",
                content="This content was generated without explicit source citations.",
            )
        )
    return sources


def citation_sources(citation: Citation, result: VerificationResult) -> List[ReviewSource]:
    """The citation as recorded, next to the provider's matched record when there is one."""
    authors = ", ".join(citation.authors) if citation.authors else "Unknown"
    sources = [
        ReviewSource(
            id="source-original",
            type=ReviewSourceType.CITATION,
            title="Original Citation",
            url=citation.url,
            content=f"Title: {citation.title or 'Unknown'}\nAuthors: {authors}",
        )
    ]
    matched = result.matched_data
    if matched is not None:
        matched_authors = ", ".join(matched.authors) if matched.authors else "Unknown"
        sources.append(
            ReviewSource(
                id="source-verified",
                type=ReviewSourceType.CONTEXT,
                title="Verified Data",
                url=f"https://doi.org/{matched.doi}" if matched.doi else None,
                content=(
                    f"Title: {matched.title or 'Unknown'}\n"
                    f"Authors: {matched_authors}\n"
                    f"Venue: {matched.venue or 'Unknown'}"
                ),
                relevance_score=result.confidence,
            )
        )
    return sources


def query_for_citation(citation: Citation) -> VerificationQuery:
    year = None
    if citation.date:
        match = _YEAR.search(citation.date)
        if match:
            year = int(match.group())
    return VerificationQuery(
        title=citation.title,
        authors=citation.authors,
        url=citation.url,
        year=year,
    )


class ReviewTriage:
    """In-memory review queues keyed by document path."""

    def __init__(
        self,
        verifier: Verifier,
        store: JsonCitationStore,
        scorer: Optional[ConfidenceScorer] = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        include_partial_citations: bool = True,
        max_items: int = DEFAULT_MAX_ITEMS,
    ):
        self.verifier = verifier
        self.store = store
        self.scorer = scorer or HeuristicConfidenceScorer()
        self.include_partial_citations = include_partial_citations
        self.max_items = max_items
        self._queues: Dict[str, DocumentReviewQueue] = {}
        self._scan_locks: Dict[str, asyncio.Lock] = {}
        self._confidence_threshold = DEFAULT_CONFIDENCE_THRESHOLD
        self.set_confidence_threshold(confidence_threshold)

    def set_confidence_threshold(self, threshold: float) -> None:
        if threshold < 0 or threshold > 1:
            raise ValueError("Threshold must be between 0 and 1")
        self._confidence_threshold = threshold

    def get_confidence_threshold(self) -> float:
        return self._confidence_threshold

    async def scan(
        self, document_path: str, content: str, options: Optional[ReviewScanOptions] = None
    ) -> DocumentReviewQueue:
        """
        Build and cache the review queue for a document.

        Args:
            document_path: Document being reviewed
            content: Current document text
            options: Per-scan overrides of threshold, partial handling and size

        Returns:
            The new queue; citation problems never abort the paragraph scan
        """
        options = options or ReviewScanOptions()
        threshold = (
            options.confidence_threshold
            if options.confidence_threshold is not None
            else self._confidence_threshold
        )
        include_partial = (
            options.include_partial_citations
            if options.include_partial_citations is not None
            else self.include_partial_citations
        )
        max_items = options.max_items if options.max_items is not None else self.max_items

        lock = self._scan_locks.setdefault(document_path, asyncio.Lock())
        async with lock:
            now = datetime.now(timezone.utc)
            items: List[ReviewItem] = self._low_confidence_items(document_path, content, threshold, now)
            items.extend(await self._citation_items(document_path, include_partial, now))

            items.sort(key=_sort_key)
            items = items[:max_items]
            queue = DocumentReviewQueue(
                document_path=document_path,
                items=items,
                stats=calculate_stats(items),
                last_updated=now,
            )
            self._queues[document_path] = queue

        logger.info(
            f"Review scan of {document_path}: {queue.stats.low_confidence_count} low-confidence, "
            f"{queue.stats.unverified_citation_count} unverified, "
            f"{queue.stats.partial_citation_count} partial"
        )
        return queue

    def _low_confidence_items(
        self, document_path: str, content: str, threshold: float, now: datetime
    ) -> List[ReviewItem]:
        document = self.scorer.compute_document_confidence(content, document_path)
        return [
            LowConfidenceReviewItem(
                document_path=document_path,
                paragraph_index=paragraph.paragraph_index,
                original_text=paragraph.text,
                confidence=paragraph.confidence,
                indicators=paragraph.indicators,
                sources=paragraph_sources(paragraph),
                created_at=now,
                updated_at=now,
            )
            for paragraph in document.paragraphs
            if paragraph.confidence < threshold
        ]

    async def _citation_items(
        self, document_path: str, include_partial: bool, now: datetime
    ) -> List[ReviewItem]:
        try:
            citation_file = await self.store.load_citations(document_path)
        except CitationStoreError as exc:
            logger.error(f"Failed to load citations for review of {document_path}: {exc}")
            return []

        items: List[ReviewItem] = []
        for citation in citation_file.citations:
            result = await self.verifier.verify(query_for_citation(citation))
            if result.status in (VerificationStatus.UNVERIFIED, VerificationStatus.ERROR):
                item_type = ReviewItemType.UNVERIFIED_CITATION
            elif result.status == VerificationStatus.PARTIAL and include_partial:
                item_type = ReviewItemType.PARTIAL_CITATION
            else:
                continue
            items.append(
                CitationReviewItem(
                    type=item_type.value,
                    document_path=document_path,
                    citation_id=citation.id,
                    citation_number=citation.number,
                    citation_title=citation.title,
                    citation_url=citation.url,
                    verification_status=result.status,
                    verification_confidence=result.confidence,
                    sources=citation_sources(citation, result),
                    usages=list(citation.usages),
                    created_at=now,
                    updated_at=now,
                )
            )
        return items

    def get_queue(self, document_path: str) -> Optional[DocumentReviewQueue]:
        return self._queues.get(document_path)

    def get_item(self, document_path: str, item_id: str) -> Optional[ReviewItem]:
        queue = self._queues.get(document_path)
        if queue is None:
            return None
        return next((item for item in queue.items if item.id == item_id), None)

    def get_pending_items(self, document_path: str) -> List[ReviewItem]:
        queue = self._queues.get(document_path)
        if queue is None:
            return []
        return [item for item in queue.items if item.status == ReviewItemStatus.PENDING]

    def apply_action(self, document_path: str, item_id: str, action: ReviewItemAction) -> Optional[ReviewItem]:
        """Apply an action; returns the updated item, or None if document or item is unknown."""
        queue = self._queues.get(document_path)
        if queue is None:
            return None
        item = next((i for i in queue.items if i.id == item_id), None)
        if item is None:
            return None

        item.status = _ACTION_STATUS[ReviewActionType(action.type)]
        item.action = action
        item.updated_at = action.timestamp
        queue.stats = calculate_stats(queue.items)
        queue.last_updated = action.timestamp
        log_review_action(document_path, item_id, ReviewActionType(action.type).value)
        return item

    def accept_item(self, document_path: str, item_id: str) -> Optional[ReviewItem]:
        return self.apply_action(document_path, item_id, ReviewItemAction(type=ReviewActionType.ACCEPT))

    def edit_item(self, document_path: str, item_id: str, edited_text: str) -> Optional[ReviewItem]:
        return self.apply_action(
            document_path, item_id, ReviewItemAction(type=ReviewActionType.EDIT, edited_text=edited_text)
        )

    def remove_item(self, document_path: str, item_id: str, reason: Optional[str] = None) -> Optional[ReviewItem]:
        return self.apply_action(
            document_path, item_id, ReviewItemAction(type=ReviewActionType.REMOVE, reason=reason)
        )

    def dismiss_item(self, document_path: str, item_id: str) -> Optional[ReviewItem]:
        return self.apply_action(document_path, item_id, ReviewItemAction(type=ReviewActionType.DISMISS))

    def clear_queue(self, document_path: str) -> None:
        self._queues.pop(document_path, None)

    def clear_all_queues(self) -> None:
        self._queues.clear()

    def get_documents_with_pending_reviews(self) -> List[str]:
        return [path for path, queue in self._queues.items() if queue.stats.pending > 0]

    def export_queue_summary(self, document_path: str) -> Optional[QueueSummary]:
        queue = self._queues.get(document_path)
        if queue is None:
            return None
        items = []
        for item in queue.items:
            if item.type == ReviewItemType.LOW_CONFIDENCE.value:
                preview = item.original_text[:PREVIEW_LENGTH]
                if len(item.original_text) > PREVIEW_LENGTH:
                    preview += "..."
            else:
                preview = item.citation_title or item.citation_url
            items.append(QueueSummaryItem(id=item.id, type=item.type, status=item.status, preview=preview))
        return QueueSummary(document_path=document_path, stats=queue.stats, items=items)
