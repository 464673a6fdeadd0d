"""
Claim extraction: find factual sentences and the sources that back them.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Protocol, Sequence, Tuple

from evidence_integrity.citation.sentences import split_sentences
from evidence_integrity.models import ExtractedClaim, RAGSource

logger = logging.getLogger(__name__)

FACTUAL_PATTERNS = [
    # Statistics and numbers
    re.compile(r"\d+(\.\d+)?%"),
    re.compile(r"\$[\d,]+"),
    re.compile(r"\d+ (million|billion|thousand)", re.IGNORECASE),
    re.compile(r"\d+ (percent|years?|months?|weeks?|days?)", re.IGNORECASE),
    # Definitive statements
    re.compile(r"\b(is|are|was|were|has|have|had)\s+(a|the|one|an)\b", re.IGNORECASE),
    re.compile(r"\b(according to|research shows|studies indicate|data suggests)", re.IGNORECASE),
    re.compile(r"\b(found that|discovered|revealed|demonstrated)", re.IGNORECASE),
    # Comparative
    re.compile(r"\b(more|less|greater|fewer|higher|lower|better|worse) than\b", re.IGNORECASE),
    re.compile(r"\b(increased|decreased|grew|declined|rose|fell)\b", re.IGNORECASE),
    # Causal
    re.compile(r"\b(because|due to|as a result|therefore|consequently)\b", re.IGNORECASE),
    re.compile(r"\b(leads to|causes|results in|contributes to)\b", re.IGNORECASE),
]

_IMPERATIVE = re.compile(r"^(please|do|don't|let's|try|make|ensure)\b", re.IGNORECASE)
_NON_WORD = re.compile(r"[^\w\s]")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_PROPER_NOUN = re.compile(r"\b[A-Z][a-z]+(?:\s[A-Z][a-z]+)*")

MIN_SOURCE_SCORE = 0.1
MAX_KEY_TERM_BONUS = 0.5
DEFAULT_RELEVANCE = 0.5


class ClaimClassifier(Protocol):
    def is_factual_claim(self, sentence: str) -> bool: ...


class HeuristicClaimClassifier:
    """Regex heuristics for statistics, definitive, comparative and causal statements."""

    def __init__(self, patterns: Optional[Sequence[re.Pattern]] = None):
        self.patterns = list(patterns) if patterns is not None else FACTUAL_PATTERNS

    def is_factual_claim(self, sentence: str) -> bool:
        stripped = sentence.strip()
        if stripped.endswith("?"):
            return False
        if _IMPERATIVE.match(stripped):
            return False
        return any(pattern.search(stripped) for pattern in self.patterns)


def _content_words(text: str) -> set[str]:
    return {w for w in _NON_WORD.sub("", text.lower()).split() if len(w) > 3}


def _proper_nouns(text: str, skip_sentence_initial: bool = False) -> List[str]:
    nouns = []
    offset = len(text) - len(text.lstrip())
    for match in _PROPER_NOUN.finditer(text):
        phrase = match.group()
        if skip_sentence_initial and match.start() == offset and " " not in phrase:
            continue
        nouns.append(phrase.lower())
    return nouns


def key_term_bonus(claim: str, source_content: str) -> float:
    """
    Bonus for shared numbers (+0.1 each) and capitalised phrases (+0.15 each).

    A lone capitalised word at the very start of the claim is ordinary
    sentence casing and is not counted. Capped at 0.5.
    """
    source_numbers = set(_NUMBER.findall(source_content))
    shared_numbers = {n for n in _NUMBER.findall(claim) if n in source_numbers}

    source_nouns = set(_proper_nouns(source_content))
    shared_nouns = {n for n in _proper_nouns(claim, skip_sentence_initial=True) if n in source_nouns}

    bonus = len(shared_numbers) * 0.1 + len(shared_nouns) * 0.15
    return min(bonus, MAX_KEY_TERM_BONUS)


def score_source(claim: str, source: RAGSource) -> float:
    """Word-set Jaccard (words over three letters) plus the key-term bonus."""
    claim_words = _content_words(claim)
    source_words = _content_words(source.content)
    union = claim_words | source_words
    similarity = len(claim_words & source_words) / len(union) if union else 0.0
    return similarity + key_term_bonus(claim, source.content)


def claim_confidence(sources: Sequence[RAGSource]) -> float:
    if not sources:
        return 0.0
    confidence = min(len(sources) * 0.25, 0.75)
    relevance = [s.relevance_score if s.relevance_score is not None else DEFAULT_RELEVANCE for s in sources]
    confidence += sum(relevance) / len(relevance) * 0.25
    return min(confidence, 1.0)


class ClaimExtractor:
    """Turn generated text into claims carrying offsets and supporting source IDs."""

    def __init__(
        self,
        classifier: Optional[ClaimClassifier] = None,
        max_sources_per_claim: int = 3,
        min_source_score: float = MIN_SOURCE_SCORE,
    ):
        self.classifier = classifier or HeuristicClaimClassifier()
        self.max_sources_per_claim = max_sources_per_claim
        self.min_source_score = min_source_score

    def find_supporting_sources(self, claim: str, sources: Sequence[RAGSource]) -> List[RAGSource]:
        scored: List[Tuple[float, int, RAGSource]] = []
        for index, source in enumerate(sources):
            score = score_source(claim, source)
            if score > self.min_source_score:
                scored.append((score, index, source))
        scored.sort(key=lambda item: (-item[0], item[1]))
        return [source for _, _, source in scored[: self.max_sources_per_claim]]

    def extract_claims(self, text: str, sources: Sequence[RAGSource]) -> List[ExtractedClaim]:
        claims: List[ExtractedClaim] = []
        for sentence in split_sentences(text):
            if not self.classifier.is_factual_claim(sentence.text):
                continue
            supporting = self.find_supporting_sources(sentence.text, sources)
            if not supporting:
                continue
            claims.append(
                ExtractedClaim(
                    text=sentence.text,
                    start_offset=sentence.start,
                    end_offset=sentence.end,
                    line=sentence.line,
                    source_ids=[s.id for s in supporting],
                    confidence=claim_confidence(supporting),
                )
            )
        logger.debug(f"Extracted {len(claims)} claims from {len(text)} characters")
        return claims
