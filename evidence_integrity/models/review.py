"""Human review queue models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from evidence_integrity.models.citations import CitationUsage
from evidence_integrity.models.enums import (
    ReviewActionType,
    ReviewItemStatus,
    ReviewSourceType,
    VerificationStatus,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_item_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class ReviewSource(BaseModel):
    """Evidence shown next to a flagged item."""

    id: str
    type: ReviewSourceType
    title: Optional[str] = None
    url: Optional[str] = None
    content: str
    relevance_score: Optional[float] = None


class ReviewItemAction(BaseModel):
    type: ReviewActionType
    timestamp: datetime = Field(default_factory=_utc_now)
    edited_text: Optional[str] = None
    reason: Optional[str] = None


class LowConfidenceReviewItem(BaseModel):
    id: str = Field(default_factory=lambda: new_item_id("lc"))
    type: Literal["low_confidence"] = "low_confidence"
    document_path: str
    paragraph_index: int
    original_text: str
    confidence: float = Field(ge=0.0, le=1.0)
    indicators: List[str] = Field(default_factory=list)
    sources: List[ReviewSource] = Field(default_factory=list)
    status: ReviewItemStatus = ReviewItemStatus.PENDING
    action: Optional[ReviewItemAction] = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class CitationReviewItem(BaseModel):
    id: str = Field(default_factory=lambda: new_item_id("cit"))
    type: Literal["unverified_citation", "partial_citation"]
    document_path: str
    citation_id: str
    citation_number: int
    citation_title: Optional[str] = None
    citation_url: str
    verification_status: VerificationStatus
    verification_confidence: float = Field(ge=0.0, le=1.0)
    sources: List[ReviewSource] = Field(default_factory=list)
    usages: List[CitationUsage] = Field(default_factory=list)
    status: ReviewItemStatus = ReviewItemStatus.PENDING
    action: Optional[ReviewItemAction] = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


ReviewItem = Annotated[
    Union[LowConfidenceReviewItem, CitationReviewItem], Field(discriminator="type")
]


class ReviewQueueStats(BaseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    edited: int = 0
    removed: int = 0
    dismissed: int = 0
    low_confidence_count: int = 0
    unverified_citation_count: int = 0
    partial_citation_count: int = 0


class DocumentReviewQueue(BaseModel):
    document_path: str
    items: List[ReviewItem] = Field(default_factory=list)
    stats: ReviewQueueStats = Field(default_factory=ReviewQueueStats)
    last_updated: datetime = Field(default_factory=_utc_now)


class ReviewScanOptions(BaseModel):
    confidence_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    include_partial_citations: Optional[bool] = None
    max_items: Optional[int] = Field(default=None, ge=1)


class QueueSummaryItem(BaseModel):
    id: str
    type: str
    status: ReviewItemStatus
    preview: str


class QueueSummary(BaseModel):
    document_path: str
    stats: ReviewQueueStats
    items: List[QueueSummaryItem]
