"""
Heuristic paragraph confidence scoring.

Scores each paragraph from linguistic cues: hedging lowers confidence,
assertions, factual attributions and citations raise it, very short or very
long paragraphs and open questions pull it down.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Protocol

from evidence_integrity.models import ConfidenceBreakdown, DocumentConfidence, ParagraphConfidence

DEFAULT_LOW_CONFIDENCE_THRESHOLD = 0.6
BASE_SCORE = 0.7
MIN_PARAGRAPH_LENGTH = 20
PREVIEW_LENGTH = 200

HEDGING_WORDS = [
    "might", "maybe", "perhaps", "possibly", "probably",
    "could", "may", "seems", "appears", "suggests",
    "likely", "unlikely", "uncertain", "unclear",
    "approximately", "roughly", "around", "about",
    "estimated", "supposed", "believed", "thought",
    "allegedly", "reportedly", "potentially", "presumably",
    "somewhat", "fairly", "rather", "quite",
    "i think", "i believe", "in my opinion", "it seems",
    "it appears", "it is possible", "it could be",
]

ASSERTION_WORDS = [
    "definitely", "certainly", "absolutely", "clearly",
    "undoubtedly", "obviously", "indeed", "surely",
    "always", "never", "must", "proven",
    "confirmed", "established", "verified", "demonstrated",
    "factually", "scientifically", "empirically",
    "according to", "based on", "as stated in",
]

FACTUAL_INDICATORS = [
    "according to", "research shows", "studies indicate",
    "data suggests", "evidence shows", "statistics show",
    "as documented in", "as reported by", "as noted in",
    "per the", "based on data", "measured at",
    "officially", "on record", "documented",
]

QUESTION_MARKERS = [
    "?", "whether", "if", "not sure",
    "unknown", "needs verification", "unconfirmed",
    "to be determined", "pending", "awaiting",
]

CITATION_PATTERNS = [
    re.compile(r"\[\d+\]"),
    re.compile(r"\(\d{4}\)"),
    re.compile(r"et al\.", re.IGNORECASE),
    re.compile(r"ibid\.", re.IGNORECASE),
    re.compile(r"doi:", re.IGNORECASE),
    re.compile(r"https?://"),
]

DEFAULT_WEIGHTS: Dict[str, float] = {
    "hedging": 0.25,
    "assertion": 0.15,
    "factual": 0.20,
    "citation": 0.20,
    "length": 0.10,
    "question": 0.10,
}

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n|\n(?=(?:[-*•]\s|[0-9]+\.))")


def _phrase_pattern(phrase: str) -> re.Pattern:
    # Whole words only, so "if" does not fire inside "different".
    if phrase[0].isalnum():
        return re.compile(r"\b" + re.escape(phrase) + r"\b")
    return re.compile(re.escape(phrase))


_HEDGING = [(w, _phrase_pattern(w)) for w in HEDGING_WORDS]
_ASSERTION = [(w, _phrase_pattern(w)) for w in ASSERTION_WORDS]
_FACTUAL = [(w, _phrase_pattern(w)) for w in FACTUAL_INDICATORS]
_QUESTION = [(w, _phrase_pattern(w)) for w in QUESTION_MARKERS]


def _matches(lower_text: str, patterns) -> List[str]:
    return [word for word, pattern in patterns if pattern.search(lower_text)]


def split_paragraphs(content: str) -> List[str]:
    parts = (p.strip() for p in _PARAGRAPH_BREAK.split(content))
    return [p for p in parts if len(p) >= MIN_PARAGRAPH_LENGTH]


class ConfidenceScorer(Protocol):
    def compute_document_confidence(
        self, content: str, document_path: Optional[str] = None
    ) -> DocumentConfidence: ...


class HeuristicConfidenceScorer:
    """Default confidence collaborator for review triage."""

    def __init__(
        self,
        low_confidence_threshold: float = DEFAULT_LOW_CONFIDENCE_THRESHOLD,
        weights: Optional[Dict[str, float]] = None,
    ):
        self.low_confidence_threshold = low_confidence_threshold
        self.weights = {**DEFAULT_WEIGHTS, **(weights or {})}

    def compute_breakdown(self, text: str) -> ConfidenceBreakdown:
        lower = text.lower()
        word_count = len(text.split())

        if word_count < 20:
            length_score = 0.5
        elif word_count < 50:
            length_score = 0.7
        elif word_count <= 200:
            length_score = 1.0
        else:
            length_score = 0.9

        citations = sum(1 for pattern in CITATION_PATTERNS if pattern.search(text))
        return ConfidenceBreakdown(
            hedging_score=min(len(_matches(lower, _HEDGING)) * 0.15, 1.0),
            assertion_score=min(len(_matches(lower, _ASSERTION)) * 0.2, 1.0),
            factual_score=min(len(_matches(lower, _FACTUAL)) * 0.25, 1.0),
            citation_score=min(citations * 0.3, 1.0),
            length_score=length_score,
            question_penalty=min(len(_matches(lower, _QUESTION)) * 0.2, 0.5),
        )

    def final_score(self, breakdown: ConfidenceBreakdown) -> float:
        w = self.weights
        score = BASE_SCORE
        score -= breakdown.hedging_score * w["hedging"]
        score += breakdown.assertion_score * w["assertion"]
        score += breakdown.factual_score * w["factual"]
        score += breakdown.citation_score * w["citation"]
        score += (breakdown.length_score - 0.7) * w["length"]
        score -= breakdown.question_penalty * w["question"]
        return max(0.0, min(1.0, score))

    def indicators(self, text: str, breakdown: ConfidenceBreakdown) -> List[str]:
        """Human-readable reasons behind a score."""
        found: List[str] = []
        if breakdown.hedging_score > 0.3:
            words = _matches(text.lower(), _HEDGING)[:3]
            found.append('Uncertain language: "' + '", "'.join(words) + '"')
        if breakdown.assertion_score > 0.2:
            found.append("Contains strong assertions")
        if breakdown.factual_score > 0.2:
            found.append("References factual sources")
        if breakdown.citation_score > 0:
            found.append("Contains citations")
        elif breakdown.factual_score == 0:
            found.append("No citations or source references")
        if breakdown.question_penalty > 0.1:
            found.append("Contains questions or uncertainties")
        if breakdown.length_score < 0.6:
            found.append("Paragraph is very short")
        return found

    def compute_paragraph_confidence(self, text: str, paragraph_index: int = 0) -> ParagraphConfidence:
        breakdown = self.compute_breakdown(text)
        confidence = self.final_score(breakdown)
        preview = text[:PREVIEW_LENGTH] + ("..." if len(text) > PREVIEW_LENGTH else "")
        return ParagraphConfidence(
            paragraph_index=paragraph_index,
            text=preview,
            confidence=confidence,
            indicators=self.indicators(text, breakdown),
            breakdown=breakdown,
            is_low_confidence=confidence < self.low_confidence_threshold,
        )

    def compute_document_confidence(
        self, content: str, document_path: Optional[str] = None
    ) -> DocumentConfidence:
        paragraphs = [
            self.compute_paragraph_confidence(text, index)
            for index, text in enumerate(split_paragraphs(content))
        ]
        overall = sum(p.confidence for p in paragraphs) / len(paragraphs) if paragraphs else 0.0
        return DocumentConfidence(
            document_path=document_path,
            overall_confidence=overall,
            paragraphs=paragraphs,
        )
