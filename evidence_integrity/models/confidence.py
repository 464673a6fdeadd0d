"""Paragraph confidence models consumed by review triage."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ConfidenceBreakdown(BaseModel):
    hedging_score: float = 0.0
    assertion_score: float = 0.0
    factual_score: float = 0.0
    citation_score: float = 0.0
    length_score: float = 0.0
    question_penalty: float = 0.0


class ParagraphConfidence(BaseModel):
    paragraph_index: int = Field(ge=0)
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    indicators: List[str] = Field(default_factory=list)
    breakdown: Optional[ConfidenceBreakdown] = None
    is_low_confidence: bool = False


class DocumentConfidence(BaseModel):
    document_path: Optional[str] = None
    overall_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    paragraphs: List[ParagraphConfidence] = Field(default_factory=list)
