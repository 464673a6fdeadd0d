"""
Field-weighted match scoring between a query and a provider record.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from evidence_integrity.models import (
    FieldMatchScore,
    MatchConfidence,
    VerificationQuery,
    VerificationStatus,
    VerifiedCitationData,
)
from evidence_integrity.models.verification import VERIFIED_THRESHOLD
from evidence_integrity.search.identifiers import doi_key

FIELD_WEIGHTS: Dict[str, float] = {
    "doi": 1.0,
    "title": 0.4,
    "authors": 0.3,
    "year": 0.15,
    "venue": 0.15,
}

_PUNCTUATION = re.compile(r"[^\w\s]")


def _words(text: str) -> set[str]:
    return set(_PUNCTUATION.sub("", text.lower()).split())


def jaccard_similarity(a: str, b: str) -> float:
    """Word-set Jaccard after lowercasing and stripping punctuation."""
    words_a = _words(a)
    words_b = _words(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def _name_parts(name: str) -> List[str]:
    # "Smith, John" -> "John Smith"
    if "," in name:
        family, _, given = name.partition(",")
        name = f"{given} {family}"
    return _PUNCTUATION.sub("", name.lower()).split()


def match_authors(query_authors: Sequence[str], matched_authors: Sequence[str]) -> float:
    """
    Fraction of query authors found in the record.

    A shared last name counts 1; otherwise any shared name part longer than two
    characters counts 0.5.
    """
    if not query_authors or not matched_authors:
        return 0.0

    candidates = [_name_parts(a) for a in matched_authors]
    candidates = [parts for parts in candidates if parts]
    matches = 0.0
    for author in query_authors:
        parts = _name_parts(author)
        if not parts:
            continue
        last = parts[-1]
        if any(c[-1] == last for c in candidates):
            matches += 1
        elif any(p in c for c in candidates for p in parts if len(p) > 2):
            matches += 0.5
    return min(1.0, matches / len(query_authors))


def score_match(
    query: VerificationQuery,
    record: VerifiedCitationData,
    weights: Optional[Dict[str, float]] = None,
) -> MatchConfidence:
    """
    Weighted average over the fields present on both sides.

    Matching DOIs settle it: confidence is 1.0 whatever the other fields say.
    """
    weights = weights or FIELD_WEIGHTS
    scores: List[FieldMatchScore] = []

    query_doi = doi_key(query.doi)
    record_doi = doi_key(record.doi)
    if query_doi and record_doi and query_doi == record_doi:
        return MatchConfidence(
            confidence=1.0,
            scores=[
                FieldMatchScore(
                    field="doi",
                    input_value=query.doi or "",
                    matched_value=record.doi or "",
                    score=1.0,
                    weight=weights["doi"],
                )
            ],
        )

    if query.title and record.title:
        scores.append(
            FieldMatchScore(
                field="title",
                input_value=query.title,
                matched_value=record.title,
                score=jaccard_similarity(query.title, record.title),
                weight=weights["title"],
            )
        )
    if query.authors and record.authors:
        scores.append(
            FieldMatchScore(
                field="authors",
                input_value=", ".join(query.authors),
                matched_value=", ".join(record.authors),
                score=match_authors(query.authors, record.authors),
                weight=weights["authors"],
            )
        )
    if query.year is not None and record.year is not None:
        scores.append(
            FieldMatchScore(
                field="year",
                input_value=str(query.year),
                matched_value=str(record.year),
                score=1.0 if query.year == record.year else 0.0,
                weight=weights["year"],
            )
        )
    if query.venue and record.venue:
        scores.append(
            FieldMatchScore(
                field="venue",
                input_value=query.venue,
                matched_value=record.venue,
                score=jaccard_similarity(query.venue, record.venue),
                weight=weights["venue"],
            )
        )

    total_weight = sum(s.weight for s in scores)
    if total_weight == 0:
        return MatchConfidence(confidence=0.0, scores=scores)
    confidence = sum(s.score * s.weight for s in scores) / total_weight
    return MatchConfidence(confidence=min(1.0, max(0.0, confidence)), scores=scores)


def status_for_confidence(confidence: float) -> VerificationStatus:
    if confidence >= VERIFIED_THRESHOLD:
        return VerificationStatus.VERIFIED
    if confidence > 0:
        return VerificationStatus.PARTIAL
    return VerificationStatus.UNVERIFIED
