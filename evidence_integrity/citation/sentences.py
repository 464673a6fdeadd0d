"""
Sentence segmentation that keeps absolute offsets into the source text.
"""

from __future__ import annotations

import re
from typing import List, NamedTuple

ABBREVIATIONS = frozenset(
    {"dr", "mr", "mrs", "ms", "prof", "e.g", "i.e", "etc", "vs", "fig", "al", "st", "jr"}
)
# Abbreviations only when a number follows, as in "No. 5"; otherwise ordinary words.
NUMBER_ABBREVIATIONS = frozenset({"no", "nos"})

MIN_SENTENCE_LENGTH = 10

# Blank lines, and newlines that start a list item or heading, always end a sentence.
_BLOCK_BREAK = re.compile(r"\n\s*\n|\n(?=[ \t]*(?:[-*•]\s|\d+\.\s|#))")
_TERMINATOR = re.compile(r"[.!?]+[\"'”’)\]]*")
_NEXT_SENTENCE_START = re.compile(r"\s+[\"'“‘(\[A-Z0-9]")


class Sentence(NamedTuple):
    text: str
    start: int
    end: int
    line: int


def _ends_with_abbreviation(segment: str, rest: str) -> bool:
    tokens = segment.split()
    if not tokens:
        return False
    token = tokens[-1].lstrip("\"'“‘([")
    if token.lower() in ABBREVIATIONS:
        return True
    if token.lower() in NUMBER_ABBREVIATIONS:
        return rest.lstrip()[:1].isdigit()
    # Single initials such as the "J" in "J. Smith".
    return len(token) == 1 and token.isupper()


def _boundaries(block: str) -> List[int]:
    """End positions (exclusive) of sentences inside one block."""
    ends: List[int] = []
    segment_start = 0
    for match in _TERMINATOR.finditer(block):
        rest = block[match.end():]
        if rest.strip() and not _NEXT_SENTENCE_START.match(rest):
            continue
        if match.group().startswith(".") and len(match.group().rstrip("\"'”’)]")) == 1:
            if _ends_with_abbreviation(block[segment_start:match.start()], rest):
                continue
        ends.append(match.end())
        segment_start = match.end()
    if not ends or ends[-1] < len(block):
        ends.append(len(block))
    return ends


def split_sentences(text: str, min_length: int = MIN_SENTENCE_LENGTH) -> List[Sentence]:
    """
    Split text into trimmed sentences with offsets and 1-based line numbers.

    A sentence ends at ``.``, ``!`` or ``?`` followed by whitespace and an
    uppercase letter, digit, quote or bracket, or at the end of the text.
    Periods after common abbreviations and single initials do not end a
    sentence. Fragments shorter than ``min_length`` are dropped.
    """
    sentences: List[Sentence] = []
    block_start = 0
    block_spans = []
    for match in _BLOCK_BREAK.finditer(text):
        block_spans.append((block_start, match.start()))
        block_start = match.end()
    block_spans.append((block_start, len(text)))

    for block_begin, block_end in block_spans:
        block = text[block_begin:block_end]
        start = 0
        for end in _boundaries(block):
            raw = block[start:end]
            stripped = raw.strip()
            if len(stripped) >= min_length:
                absolute = block_begin + start + (len(raw) - len(raw.lstrip()))
                sentences.append(
                    Sentence(
                        text=stripped,
                        start=absolute,
                        end=absolute + len(stripped),
                        line=text.count("\n", 0, absolute) + 1,
                    )
                )
            start = end
    return sentences


def line_number_at(text: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return text.count("\n", 0, offset) + 1
