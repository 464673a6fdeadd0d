"""Unit tests for claim detection and source matching."""

import pytest

from evidence_integrity.citation.claims import (
    ClaimExtractor,
    HeuristicClaimClassifier,
    claim_confidence,
    key_term_bonus,
    score_source,
)
from evidence_integrity.models import RAGSource


def _source(source_id: str, content: str, relevance=None) -> RAGSource:
    return RAGSource(
        id=source_id,
        url=f"https://example.com/{source_id}",
        title=source_id,
        content=content,
        relevance_score=relevance,
    )


class TestClassifier:
    @pytest.mark.parametrize(
        "sentence",
        [
            "The market grew by 15% according to a recent report.",
            "Revenue reached $4,000 in the first quarter.",
            "Doctors found that 40% of patients improved.",
            "Costs were higher than expected because of inflation.",
            "Paris is the capital of France.",
        ],
    )
    def test_factual_sentences(self, sentence):
        assert HeuristicClaimClassifier().is_factual_claim(sentence)

    @pytest.mark.parametrize(
        "sentence",
        [
            "Did the market grow by 15% last year?",
            "Make sure revenue increased by 10% before launch.",
            "Please check that the market grew.",
            "I enjoyed the conference very much.",
        ],
    )
    def test_non_claims(self, sentence):
        assert not HeuristicClaimClassifier().is_factual_claim(sentence)


class TestKeyTermBonus:
    def test_shared_numbers(self):
        assert key_term_bonus("Sales grew 15% to 200 units", "a 15% rise") == pytest.approx(0.1)

    def test_repeated_number_counts_once(self):
        assert key_term_bonus("15 and 15 and 15", "15") == pytest.approx(0.1)

    def test_shared_proper_noun_phrase(self):
        bonus = key_term_bonus(
            "In 2020 the World Health Organization said so", "Officials at World Health Organization agreed"
        )
        assert bonus == pytest.approx(0.15)

    def test_sentence_initial_word_is_not_a_proper_noun(self):
        assert key_term_bonus("Revenue fell sharply", "Revenue fell") == 0.0

    def test_capped(self):
        claim = "Revenue hit 12 and 15 and 18 and 20 and 30 and 40"
        assert key_term_bonus(claim, "12 15 18 20 30 40") == pytest.approx(0.5)


def test_score_source_combines_overlap_and_bonus():
    source = _source("s1", "The market grew 15% in 2023 according to the annual report.")

    score = score_source("The market grew by 15% according to a recent report.", source)

    assert score == pytest.approx(4 / 7 + 0.1)


def test_claim_confidence():
    assert claim_confidence([]) == 0.0
    assert claim_confidence([_source("a", "", 0.9), _source("b", "", 0.7)]) == pytest.approx(0.7)
    assert claim_confidence([_source("a", "")]) == pytest.approx(0.25 + 0.5 * 0.25)
    many = [_source(str(i), "", 1.0) for i in range(5)]
    assert claim_confidence(many) == pytest.approx(1.0)


class TestExtractor:
    def test_market_claim_is_linked_to_its_source(self):
        text = "The market grew by 15% according to a recent report."
        source = _source("s1", "The market grew 15% in 2023 according to the annual report.")

        claims = ClaimExtractor().extract_claims(text, [source])

        assert len(claims) == 1
        claim = claims[0]
        assert claim.text == text
        assert claim.start_offset == 0
        assert claim.end_offset == len(text)
        assert claim.line == 1
        assert claim.source_ids == ["s1"]
        assert claim.confidence > 0

    def test_claims_without_supporting_sources_are_dropped(self):
        text = "The market grew by 15% according to a recent report."
        unrelated = _source("s9", "Penguins waddle across Antarctic sea ice.")

        assert ClaimExtractor().extract_claims(text, [unrelated]) == []

    def test_non_claim_sentences_are_skipped(self):
        text = "I enjoyed the conference very much. The market grew by 15% last year."
        source = _source("s1", "The market grew 15% last year.")

        claims = ClaimExtractor().extract_claims(text, [source])

        assert [c.text for c in claims] == ["The market grew by 15% last year."]
        assert claims[0].start_offset == text.index("The market")

    def test_supporting_sources_are_capped_and_stable(self):
        content = "The market grew 15% according to the annual report."
        sources = [_source(f"s{i}", content) for i in range(5)]

        claims = ClaimExtractor(max_sources_per_claim=3).extract_claims(
            "The market grew by 15% according to a recent report.", sources
        )

        assert claims[0].source_ids == ["s0", "s1", "s2"]

    def test_custom_classifier(self):
        class EverythingIsAClaim:
            def is_factual_claim(self, sentence: str) -> bool:
                return True

        text = "Penguins enjoy the cold water."
        source = _source("s1", "Penguins enjoy cold water near Antarctica.")

        claims = ClaimExtractor(classifier=EverythingIsAClaim()).extract_claims(text, [source])

        assert len(claims) == 1
