"""Citation store, claim extraction, marker insertion and relocation."""

from .attachment import CitationAttachmentService
from .claims import ClaimClassifier, ClaimExtractor, HeuristicClaimClassifier
from .relocation import RelocationEngine
from .store import CitationStoreError, JsonCitationStore

__all__ = [
    "CitationAttachmentService",
    "CitationStoreError",
    "ClaimClassifier",
    "ClaimExtractor",
    "HeuristicClaimClassifier",
    "JsonCitationStore",
    "RelocationEngine",
]
