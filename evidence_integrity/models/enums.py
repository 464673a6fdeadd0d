"""Enum definitions for typed pipeline boundaries."""

from enum import Enum


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    PARTIAL = "partial"
    UNVERIFIED = "unverified"
    ERROR = "error"


class VerificationSource(str, Enum):
    OPENALEX = "openalex"
    CROSSREF = "crossref"
    CACHE = "cache"


class CacheQueryType(str, Enum):
    DOI = "doi"
    SEARCH = "search"


class CitationProvider(str, Enum):
    PERPLEXITY = "perplexity"
    GEMINI = "gemini"
    MANUAL = "manual"
    IMPORTED = "imported"


class ReviewItemType(str, Enum):
    LOW_CONFIDENCE = "low_confidence"
    UNVERIFIED_CITATION = "unverified_citation"
    PARTIAL_CITATION = "partial_citation"


class ReviewItemStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EDITED = "edited"
    REMOVED = "removed"
    DISMISSED = "dismissed"


class ReviewActionType(str, Enum):
    ACCEPT = "accept"
    EDIT = "edit"
    REMOVE = "remove"
    DISMISS = "dismiss"


class ReviewSourceType(str, Enum):
    CITATION = "citation"
    CONTEXT = "context"
    GENERATED = "generated"
