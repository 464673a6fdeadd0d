"""Unit tests for citation marker insertion."""

from evidence_integrity.citation.markers import (
    citation_numbers_for_claim,
    format_marker,
    insert_markers,
    strip_markers,
)
from evidence_integrity.models import ExtractedClaim, RAGSource

TEXT = "Sales rose by 10%. Other text follows here."


def _claim(text: str, start: int, source_ids) -> ExtractedClaim:
    return ExtractedClaim(
        text=text, start_offset=start, end_offset=start + len(text), line=1, source_ids=source_ids
    )


def _source(source_id: str, url: str) -> RAGSource:
    return RAGSource(id=source_id, url=url, title=source_id)


def test_format_marker():
    assert format_marker([1]) == " [1]"
    assert format_marker([1, 3]) == " [1, 3]"


def test_marker_goes_before_final_punctuation():
    claim = _claim("Sales rose by 10%.", 0, ["s1"])

    result = insert_markers(TEXT, [claim], {"https://a": 1}, [_source("s1", "https://a")])

    assert result == "Sales rose by 10% [1]. Other text follows here."


def test_numbers_are_unique_and_sorted():
    claim = _claim("Sales rose by 10%.", 0, ["s2", "s1", "s3"])
    sources = [_source("s1", "https://a"), _source("s2", "https://b"), _source("s3", "https://a")]

    result = insert_markers(TEXT, [claim], {"https://a": 1, "https://b": 2}, sources)

    assert result.startswith("Sales rose by 10% [1, 2].")


def test_citation_references_resolve_directly():
    claim = _claim("Sales rose by 10%.", 0, ["cit:4", "cit:bogus"])

    assert citation_numbers_for_claim(claim, {}, {}) == [4]
    assert insert_markers(TEXT, [claim], {}).startswith("Sales rose by 10% [4].")


def test_marker_appended_without_trailing_punctuation():
    text = "Revenue doubled within two years"
    claim = _claim(text, 0, ["cit:2"])

    assert insert_markers(text, [claim], {}) == "Revenue doubled within two years [2]"


def test_multiple_claims_keep_offsets_valid():
    claims = [
        _claim("Sales rose by 10%.", 0, ["cit:1"]),
        _claim("Other text follows here.", 19, ["cit:2"]),
    ]

    result = insert_markers(TEXT, claims, {})

    assert result == "Sales rose by 10% [1]. Other text follows here [2]."


def test_existing_marker_is_not_duplicated():
    text = "Sales rose by 10% [1]. More text."
    claim = _claim("Sales rose by 10% [1].", 0, ["cit:1"])

    assert insert_markers(text, [claim], {}) == text


def test_rerun_on_annotated_text_adds_nothing():
    claim = _claim("Sales rose by 10%.", 0, ["cit:1"])

    once = insert_markers(TEXT, [claim], {})
    twice = insert_markers(once, [claim], {})

    assert twice == once


def test_claims_without_resolvable_sources_are_untouched():
    claim = _claim("Sales rose by 10%.", 0, ["unknown"])

    assert insert_markers(TEXT, [claim], {"https://a": 1}) == TEXT


def test_strip_markers():
    assert strip_markers("Sales rose by 10% [1, 2]. Next [3].") == "Sales rose by 10%. Next."
