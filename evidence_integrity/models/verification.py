"""Bibliographic verification models."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from evidence_integrity.models.enums import VerificationSource, VerificationStatus

VERIFIED_THRESHOLD = 0.8


class VerificationQuery(BaseModel):
    """What is known about a cited work. At least one field is needed for a lookup."""

    doi: Optional[str] = None
    title: Optional[str] = None
    authors: Optional[List[str]] = None
    year: Optional[int] = None
    url: Optional[str] = None
    venue: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.doi or self.title or self.authors or self.year or self.url or self.venue)


class VerifiedCitationData(BaseModel):
    """Normalised bibliographic record returned by a provider."""

    doi: Optional[str] = None
    title: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    year: Optional[int] = None
    publication_date: Optional[str] = None
    venue: Optional[str] = None
    publisher: Optional[str] = None
    openalex_id: Optional[str] = None
    cited_by_count: Optional[int] = None
    abstract: Optional[str] = None
    type: Optional[str] = None


class VerificationResult(BaseModel):
    status: VerificationStatus
    confidence: float = Field(ge=0.0, le=1.0)
    source: Optional[VerificationSource] = None
    matched_data: Optional[VerifiedCitationData] = None
    error: Optional[str] = None
    from_cache: bool = False

    @model_validator(mode="after")
    def _verified_requires_high_confidence(self) -> "VerificationResult":
        if self.status == VerificationStatus.VERIFIED and self.confidence < VERIFIED_THRESHOLD:
            raise ValueError(
                f"verified results need confidence >= {VERIFIED_THRESHOLD}, got {self.confidence}"
            )
        return self


class FieldMatchScore(BaseModel):
    field: str
    input_value: str
    matched_value: str
    score: float = Field(ge=0.0, le=1.0)
    weight: float


class MatchConfidence(BaseModel):
    confidence: float = Field(ge=0.0, le=1.0)
    scores: List[FieldMatchScore] = Field(default_factory=list)


class CacheStats(BaseModel):
    total_entries: int
    valid_entries: int
    expired_entries: int
    cache_size_bytes: int
