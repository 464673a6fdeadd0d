"""Configuration models loaded from YAML."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field


class ProviderRateLimit(BaseModel):
    max_tokens: float = Field(gt=0, default=10.0)
    refill_rate: float = Field(gt=0, default=10.0, description="Tokens added per second.")


class CircuitBreakerSettings(BaseModel):
    failure_threshold: int = Field(ge=1, default=5)
    success_threshold: int = Field(ge=1, default=1)
    timeout: float = Field(gt=0, default=60.0)


def _default_rate_limits() -> Dict[str, ProviderRateLimit]:
    # Crossref's polite pool allows ~50 rps; both providers are capped well below that.
    return {
        "openalex": ProviderRateLimit(max_tokens=10.0, refill_rate=10.0),
        "crossref": ProviderRateLimit(max_tokens=10.0, refill_rate=10.0),
    }


class VerificationConfig(BaseModel):
    contact_email: str = "evidence-integrity@users.noreply.github.com"
    user_agent: str = "evidence-integrity/0.1"
    openalex_api_key: Optional[str] = None
    cache_dir: str = "data/cache"
    doi_ttl_seconds: int = Field(ge=1, default=7 * 24 * 60 * 60)
    search_ttl_seconds: int = Field(ge=1, default=60 * 60)
    search_rows: int = Field(ge=1, le=50, default=5)
    accept_threshold: float = Field(
        ge=0.0,
        le=1.0,
        default=0.7,
        description="A first-provider search result at or above this confidence skips the second provider.",
    )
    request_timeout: float = Field(gt=0, default=30.0)
    verify_timeout: Optional[float] = Field(default=None, gt=0)
    max_attempts: int = Field(ge=1, le=10, default=3)
    rate_limits: Dict[str, ProviderRateLimit] = Field(default_factory=_default_rate_limits)
    circuit_breaker: CircuitBreakerSettings = Field(default_factory=CircuitBreakerSettings)


class AttachmentConfig(BaseModel):
    insert_markers: bool = True
    min_relevance: float = Field(ge=0.0, le=1.0, default=0.5)
    max_citations_per_claim: int = Field(ge=1, default=3)


class ReviewConfig(BaseModel):
    confidence_threshold: float = Field(ge=0.0, le=1.0, default=0.6)
    include_partial_citations: bool = True
    max_items: int = Field(ge=1, default=100)


class LoggingConfig(BaseModel):
    level: str = Field(default="normal", pattern="^(minimal|normal|detailed|full)$")
    log_file: Optional[str] = None
    structured_log_dir: Optional[str] = None


class SettingsConfig(BaseModel):
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    attachment: AttachmentConfig = Field(default_factory=AttachmentConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
