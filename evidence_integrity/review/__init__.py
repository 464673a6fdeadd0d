"""Human review queue."""

from .triage import ReviewTriage

__all__ = ["ReviewTriage"]
