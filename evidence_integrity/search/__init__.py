"""Bibliographic lookups: connectors, rate limiting and the verification cache."""

from .cache import VerificationCache
from .crossref import CrossrefConnector
from .exceptions import (
    DatabaseSearchError,
    DatabaseUnavailableError,
    ForbiddenError,
    InvalidQueryError,
    NetworkError,
    ParsingError,
)
from .openalex import OpenAlexConnector
from .rate_limiter import RateLimiter

__all__ = [
    "CrossrefConnector",
    "DatabaseSearchError",
    "DatabaseUnavailableError",
    "ForbiddenError",
    "InvalidQueryError",
    "NetworkError",
    "OpenAlexConnector",
    "ParsingError",
    "RateLimiter",
    "VerificationCache",
]
