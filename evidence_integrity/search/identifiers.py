"""Identifier normalisation shared by connectors, scoring and the cache."""

from __future__ import annotations

import re

_DOI_PREFIX = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:\s*)", re.IGNORECASE)
_DOI_SHAPE = re.compile(r"^10\.\d{4,}/\S+")


def normalize_doi(doi: str | None) -> str | None:
    """
    Strip resolver prefixes and validate DOI shape.

    >>> normalize_doi("https://doi.org/10.1234/ABC")
    '10.1234/ABC'
    >>> normalize_doi("not-a-doi") is None
    True

    Case is preserved; compare with :func:`doi_key`.
    """
    if not doi:
        return None
    normalized = _DOI_PREFIX.sub("", doi.strip()).strip()
    if not _DOI_SHAPE.match(normalized):
        return None
    return normalized


def doi_key(doi: str | None) -> str | None:
    """Case-folded DOI for equality checks (DOIs are case-insensitive)."""
    normalized = normalize_doi(doi)
    return normalized.lower() if normalized else None
