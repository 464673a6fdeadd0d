"""IEEE-style ``[n]`` marker insertion."""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Sequence

from evidence_integrity.models import ExtractedClaim, RAGSource

EXISTING_MARKER = re.compile(r"\[\d+(?:,\s*\d+)*\]")
_MARKER_WITH_SPACE = re.compile(r"\s?" + EXISTING_MARKER.pattern)
CITATION_REF_PREFIX = "cit:"

# Characters inspected before/after the insertion point for an existing marker.
WINDOW_BEFORE = 20
WINDOW_AFTER = 10


def strip_markers(text: str) -> str:
    """Text with citation markers (and the space before each) removed."""
    return _MARKER_WITH_SPACE.sub("", text)


def format_marker(numbers: Sequence[int]) -> str:
    return f" [{', '.join(str(n) for n in numbers)}]"


def citation_numbers_for_claim(
    claim: ExtractedClaim,
    url_to_number: Mapping[str, int],
    sources_by_id: Mapping[str, RAGSource],
) -> List[int]:
    """
    Resolve a claim's source IDs to sorted, unique citation numbers.

    IDs of the form ``cit:<n>`` already name a citation number.
    """
    numbers = set()
    for source_id in claim.source_ids:
        if source_id.startswith(CITATION_REF_PREFIX):
            try:
                numbers.add(int(source_id[len(CITATION_REF_PREFIX):]))
            except ValueError:
                continue
            continue
        source = sources_by_id.get(source_id)
        if source is not None and source.url in url_to_number:
            numbers.add(url_to_number[source.url])
    return sorted(numbers)


def insert_markers(
    text: str,
    claims: Sequence[ExtractedClaim],
    url_to_number: Mapping[str, int],
    sources: Optional[Sequence[RAGSource]] = None,
) -> str:
    """
    Insert citation markers after each claim.

    Claims are processed from the end of the text backwards so earlier offsets
    stay valid. A marker goes before trailing ``.``, ``!`` or ``?`` and is
    skipped when a marker already sits near that position, so re-running on
    annotated text adds nothing.
    """
    sources_by_id: Dict[str, RAGSource] = {s.id: s for s in sources or []}
    result = text
    for claim in sorted(claims, key=lambda c: c.end_offset, reverse=True):
        numbers = citation_numbers_for_claim(claim, url_to_number, sources_by_id)
        if not numbers:
            continue

        position = claim.end_offset
        if position > 0 and text[position - 1 : position] in (".", "!", "?"):
            position -= 1

        window = result[max(0, position - WINDOW_BEFORE) : position + WINDOW_AFTER]
        if EXISTING_MARKER.search(window):
            continue

        result = result[:position] + format_marker(numbers) + result[position:]
    return result
