"""Citation verification."""

from .verifier import CitationVerifier

__all__ = ["CitationVerifier"]
