"""Unit tests for claim relocation after document edits."""

import pytest

from evidence_integrity.citation.relocation import (
    RelocationEngine,
    context_hash,
    find_exact,
    find_fuzzy,
    parse_context_hash,
)
from evidence_integrity.models import Citation, CitationFile, CitationUsage, SourceClaimLink

CLAIM = "The market grew by 15% according to a recent report."


def _citation_file(claim: str = CLAIM, offset: int = 0) -> CitationFile:
    citation = Citation(
        number=1,
        url="https://example.com/report",
        usages=[CitationUsage(claim=claim, offset=offset, line=1)],
    )
    link = SourceClaimLink(
        citation_id=citation.id,
        citation_number=1,
        claim_text=claim,
        original_offset=offset,
        original_line=1,
        context_hash=context_hash(claim),
    )
    return CitationFile(
        document_path="plan.md", citations=[citation], next_number=2, source_claim_links=[link]
    )


class TestContextHash:
    def test_format(self):
        assert context_hash(CLAIM) == f"the:report.:{len(CLAIM)}"

    def test_colons_are_removed_from_words(self):
        assert context_hash("Note: this holds true.") == "note:true.:22"

    def test_parse_round_trip(self):
        assert parse_context_hash("the:report.:52") == ("the", "report.", 52)
        assert parse_context_hash("garbage") is None
        assert parse_context_hash("a:b:notanumber") is None


class TestFinders:
    def test_find_exact_prefers_original_offset(self):
        text = f"{CLAIM} {CLAIM}"
        second = len(CLAIM) + 1

        assert find_exact(CLAIM, text, preferred_offset=second) == second
        assert find_exact(CLAIM, text) == 0

    def test_find_exact_tolerates_inserted_marker(self):
        text = "Intro sentence here. The market grew by 15% according to a recent report [1]."

        assert find_exact(CLAIM, text) == text.index("The market")

    def test_find_fuzzy_within_tolerance(self):
        text = "Something else entirely. The annual report."

        assert find_fuzzy("the:report.:20", text) == text.index("The annual")

    def test_find_fuzzy_outside_tolerance(self):
        assert find_fuzzy("the:report.:50", "The annual report.") is None

    def test_find_fuzzy_requires_first_and_last_word(self):
        assert find_fuzzy("the:summary.:18", "The annual report.") is None


class TestRelocationEngine:
    def test_unchanged_text_is_a_no_op(self):
        citation_file = _citation_file()
        engine = RelocationEngine()

        result = engine.relocate(citation_file, CLAIM)

        assert (result.relocated, result.lost) == (1, 0)
        assert citation_file.source_claim_links[0].original_offset == 0

    def test_moved_claim_updates_link_and_usage(self):
        citation_file = _citation_file()
        new_text = "A new introduction.\n\n" + CLAIM

        result = RelocationEngine().relocate(citation_file, new_text)

        link = citation_file.source_claim_links[0]
        usage = citation_file.citations[0].usages[0]
        assert result.relocated == 1
        assert link.original_offset == new_text.index("The market")
        assert link.original_line == 3
        assert (usage.offset, usage.line) == (link.original_offset, 3)

    def test_small_edit_is_found_by_fingerprint(self):
        citation_file = _citation_file()
        new_text = "The market grew by 16% according to a recent report."

        result = RelocationEngine().relocate(citation_file, new_text)

        assert (result.relocated, result.lost) == (1, 0)

    def test_lost_claims_are_kept(self):
        citation_file = _citation_file(offset=5)

        result = RelocationEngine().relocate(citation_file, "Completely rewritten content without the claim.")

        assert (result.relocated, result.lost) == (0, 1)
        assert len(citation_file.source_claim_links) == 1
        assert citation_file.source_claim_links[0].original_offset == 5

    def test_relocation_is_idempotent(self):
        citation_file = _citation_file()
        new_text = "Preface text.\n\n" + CLAIM
        engine = RelocationEngine()

        engine.relocate(citation_file, new_text)
        first = citation_file.source_claim_links[0].model_copy()
        engine.relocate(citation_file, new_text)

        assert citation_file.source_claim_links[0] == first

    @pytest.mark.parametrize("tolerance,found", [(0.2, False), (0.6, True)])
    def test_tolerance_is_configurable(self, tolerance, found):
        citation_file = _citation_file()
        new_text = "The market grew by a remarkable 15% according to the most recent annual report."

        result = RelocationEngine(tolerance=tolerance).relocate(citation_file, new_text)

        assert result.relocated == (1 if found else 0)
