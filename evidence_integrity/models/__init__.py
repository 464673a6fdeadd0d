"""Model exports for pipeline boundaries."""

from evidence_integrity.models.citations import (
    AddCitationInput,
    AttachmentOptions,
    AttachmentResult,
    Citation,
    CitationFile,
    CitationUpdate,
    CitationUsage,
    ExtractedClaim,
    RAGSource,
    RelocationResult,
    SourceClaimLink,
)
from evidence_integrity.models.confidence import (
    ConfidenceBreakdown,
    DocumentConfidence,
    ParagraphConfidence,
)
from evidence_integrity.models.config import (
    AttachmentConfig,
    CircuitBreakerSettings,
    LoggingConfig,
    ProviderRateLimit,
    ReviewConfig,
    SettingsConfig,
    VerificationConfig,
)
from evidence_integrity.models.enums import (
    CacheQueryType,
    CitationProvider,
    ReviewActionType,
    ReviewItemStatus,
    ReviewItemType,
    ReviewSourceType,
    VerificationSource,
    VerificationStatus,
)
from evidence_integrity.models.review import (
    CitationReviewItem,
    DocumentReviewQueue,
    LowConfidenceReviewItem,
    QueueSummary,
    QueueSummaryItem,
    ReviewItem,
    ReviewItemAction,
    ReviewQueueStats,
    ReviewScanOptions,
    ReviewSource,
)
from evidence_integrity.models.verification import (
    CacheStats,
    FieldMatchScore,
    MatchConfidence,
    VerificationQuery,
    VerificationResult,
    VerifiedCitationData,
)

__all__ = [
    "AddCitationInput",
    "AttachmentConfig",
    "AttachmentOptions",
    "AttachmentResult",
    "CacheQueryType",
    "CacheStats",
    "CircuitBreakerSettings",
    "Citation",
    "CitationFile",
    "CitationProvider",
    "CitationReviewItem",
    "CitationUpdate",
    "CitationUsage",
    "ConfidenceBreakdown",
    "DocumentConfidence",
    "DocumentReviewQueue",
    "ExtractedClaim",
    "FieldMatchScore",
    "LoggingConfig",
    "LowConfidenceReviewItem",
    "MatchConfidence",
    "ParagraphConfidence",
    "ProviderRateLimit",
    "QueueSummary",
    "QueueSummaryItem",
    "RAGSource",
    "RelocationResult",
    "ReviewActionType",
    "ReviewConfig",
    "ReviewItem",
    "ReviewItemAction",
    "ReviewItemStatus",
    "ReviewItemType",
    "ReviewQueueStats",
    "ReviewScanOptions",
    "ReviewSource",
    "ReviewSourceType",
    "SettingsConfig",
    "SourceClaimLink",
    "VerificationConfig",
    "VerificationQuery",
    "VerificationResult",
    "VerificationSource",
    "VerificationStatus",
    "VerifiedCitationData",
]
