"""Citation store, source-claim link, and claim extraction models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from evidence_integrity.models.enums import CitationProvider


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_citation_id() -> str:
    return f"cit_{uuid.uuid4().hex[:12]}"


class CitationUsage(BaseModel):
    """Where a citation is used in the document."""

    claim: str
    line: Optional[int] = None
    offset: Optional[int] = None


class Citation(BaseModel):
    id: str = Field(default_factory=new_citation_id)
    number: int = Field(ge=1)
    url: str
    title: Optional[str] = None
    authors: Optional[List[str]] = None
    date: Optional[str] = None
    publisher: Optional[str] = None
    accessed_at: str = Field(default_factory=utc_now_iso)
    source: CitationProvider = CitationProvider.MANUAL
    usages: List[CitationUsage] = Field(default_factory=list)


class SourceClaimLink(BaseModel):
    """Traceability record tying a claim sentence to the citation supporting it.

    context_hash is "<first word>:<last word>:<length>" of the claim text and is
    what lets a claim be found again after small in-sentence edits.
    """

    citation_id: str
    citation_number: int
    claim_text: str
    original_offset: int = Field(ge=0)
    original_line: Optional[int] = None
    context_hash: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class CitationFile(BaseModel):
    """Structure of the ``.citations.json`` sidecar file."""

    version: Literal["1.0"] = "1.0"
    document_path: str
    updated_at: str = Field(default_factory=utc_now_iso)
    citations: List[Citation] = Field(default_factory=list)
    next_number: int = Field(default=1, ge=1)
    source_claim_links: List[SourceClaimLink] = Field(default_factory=list)


class AddCitationInput(BaseModel):
    url: str
    title: Optional[str] = None
    authors: Optional[List[str]] = None
    date: Optional[str] = None
    publisher: Optional[str] = None
    source: CitationProvider = CitationProvider.MANUAL
    claim: Optional[str] = None
    line: Optional[int] = None
    offset: Optional[int] = None


class CitationUpdate(BaseModel):
    url: Optional[str] = None
    title: Optional[str] = None
    authors: Optional[List[str]] = None
    date: Optional[str] = None
    publisher: Optional[str] = None


class RAGSource(BaseModel):
    """A retrieved snippet offered as candidate evidence for generated text."""

    id: str
    url: str
    title: str
    content: str = ""
    authors: Optional[List[str]] = None
    date: Optional[str] = None
    publisher: Optional[str] = None
    relevance_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    provider: CitationProvider = CitationProvider.MANUAL


class ExtractedClaim(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    line: int = Field(ge=1)
    source_ids: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AttachmentOptions(BaseModel):
    insert_markers: bool = True
    min_relevance: float = Field(default=0.5, ge=0.0, le=1.0)
    max_citations_per_claim: int = Field(default=3, ge=1)


class AttachmentResult(BaseModel):
    annotated_text: str
    claims: List[ExtractedClaim]
    added_citations: List[Citation]
    total_citations: int


class RelocationResult(BaseModel):
    relocated: int = 0
    lost: int = 0
