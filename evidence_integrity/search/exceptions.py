"""
Custom exceptions for bibliographic database lookups.
"""


class DatabaseSearchError(Exception):
    """Base exception for bibliographic database errors."""

    pass


class NetworkError(DatabaseSearchError):
    """Raised when the request never got a usable HTTP response."""

    pass


class DatabaseUnavailableError(DatabaseSearchError):
    """Raised on HTTP 429 or 5xx; the provider may recover."""

    pass


class ForbiddenError(DatabaseSearchError):
    """Raised when access is forbidden (403). Does not trigger retries."""

    pass


class ParsingError(DatabaseSearchError):
    """Raised when a response body is not the JSON shape the provider documents."""

    pass


class InvalidQueryError(DatabaseSearchError):
    """Raised when a query carries nothing a provider can search on."""

    pass
