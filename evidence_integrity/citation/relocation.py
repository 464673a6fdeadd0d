"""
Re-locate linked claims after a document has been edited.

Links that cannot be found are counted as lost and left in place for manual
reconciliation; nothing here deletes a link.
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple, Optional, Tuple

from evidence_integrity.citation.markers import EXISTING_MARKER, strip_markers
from evidence_integrity.citation.sentences import line_number_at, split_sentences
from evidence_integrity.models import CitationFile, RelocationResult, SourceClaimLink

logger = logging.getLogger(__name__)

LENGTH_TOLERANCE = 0.2



class ClaimPosition(NamedTuple):
    offset: int
    line: int


def _hash_word(word: str) -> str:
    return word.lower().replace(":", "")


def context_hash(text: str) -> str:
    """``first:last:length`` fingerprint of a claim (words lowercased, colons dropped)."""
    words = text.split()
    first = _hash_word(words[0]) if words else ""
    last = _hash_word(words[-1]) if words else ""
    return f"{first}:{last}:{len(text)}"


def parse_context_hash(value: str) -> Optional[Tuple[str, str, int]]:
    parts = value.rsplit(":", 2)
    if len(parts) != 3:
        return None
    try:
        return parts[0], parts[1], int(parts[2])
    except ValueError:
        return None


def _claim_pattern(claim: str) -> re.Pattern:
    """The claim, optionally with a citation marker before its final punctuation."""
    if claim and claim[-1] in ".!?":
        body, tail = claim[:-1], claim[-1]
    else:
        body, tail = claim, ""
    return re.compile(re.escape(body) + r"(?:\s" + EXISTING_MARKER.pattern + ")?" + re.escape(tail))


def find_exact(claim: str, text: str, preferred_offset: Optional[int] = None) -> Optional[int]:
    """
    Offset of the claim in ``text``, tolerating a marker added after it.

    An occurrence at ``preferred_offset`` wins over earlier ones so repeated
    relocation over unchanged text is stable.
    """
    if not claim:
        return None
    pattern = _claim_pattern(claim)
    if preferred_offset is not None and pattern.match(text, preferred_offset):
        return preferred_offset
    match = pattern.search(text)
    return match.start() if match else None


def find_fuzzy(fingerprint: str, text: str, tolerance: float = LENGTH_TOLERANCE) -> Optional[int]:
    """
    Offset of the first sentence matching the fingerprint's first and last word
    whose length is within ``tolerance`` of the original.
    """
    parsed = parse_context_hash(fingerprint)
    if parsed is None:
        return None
    first, last, original_length = parsed
    if original_length <= 0:
        return None

    for sentence in split_sentences(text):
        plain = strip_markers(sentence.text)
        words = plain.split()
        if not words:
            continue
        if _hash_word(words[0]) != first or _hash_word(words[-1]) != last:
            continue
        if abs(len(plain) - original_length) / original_length <= tolerance:
            return sentence.start
    return None


class RelocationEngine:
    """Update link and usage positions in a citation file for new document text."""

    def __init__(self, tolerance: float = LENGTH_TOLERANCE):
        self.tolerance = tolerance

    def locate(self, link: SourceClaimLink, text: str) -> Optional[ClaimPosition]:
        offset = find_exact(link.claim_text, text, preferred_offset=link.original_offset)
        if offset is None:
            offset = find_fuzzy(link.context_hash, text, self.tolerance)
        if offset is None:
            return None
        return ClaimPosition(offset=offset, line=line_number_at(text, offset))

    def relocate(self, citation_file: CitationFile, new_text: str) -> RelocationResult:
        """
        Move every link (and the usages recording the same claim) to its new position.

        Mutates ``citation_file`` in place.
        """
        citations = {c.id: c for c in citation_file.citations}
        result = RelocationResult()
        for link in citation_file.source_claim_links:
            position = self.locate(link, new_text)
            if position is None:
                logger.info(
                    f"Lost claim for citation [{link.citation_number}]: {link.claim_text[:60]!r}"
                )
                result.lost += 1
                continue

            link.original_offset = position.offset
            link.original_line = position.line
            citation = citations.get(link.citation_id)
            if citation is not None:
                claim = strip_markers(link.claim_text)
                for usage in citation.usages:
                    if strip_markers(usage.claim) == claim:
                        usage.offset = position.offset
                        usage.line = position.line
            result.relocated += 1
        return result
