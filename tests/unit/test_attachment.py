"""Unit tests for citation attachment and relocation through the store."""

import pytest

from evidence_integrity.citation.attachment import CitationAttachmentService
from evidence_integrity.models import AttachmentOptions, CitationProvider, RAGSource

TEXT = (
    "The market grew by 15% according to a recent report. "
    "Solar capacity increased by 40% in Europe last year. "
    "I hope you enjoy reading."
)

ANNOTATED = (
    "The market grew by 15% according to a recent report [1]. "
    "Solar capacity increased by 40% in Europe last year [2]. "
    "I hope you enjoy reading."
)


@pytest.fixture
def service(store) -> CitationAttachmentService:
    return CitationAttachmentService(store)


@pytest.mark.asyncio
async def test_each_claim_gets_exactly_one_marker(service, document_path, market_sources):
    result = await service.attach_citations(document_path, TEXT, market_sources)

    assert result.annotated_text == ANNOTATED
    assert result.total_citations == 2
    assert [c.number for c in result.added_citations] == [1, 2]
    assert [c.source_ids for c in result.claims] == [["cit:1"], ["cit:2"]]


@pytest.mark.asyncio
async def test_links_and_usages_are_stored(service, store, document_path, market_sources):
    await service.attach_citations(document_path, TEXT, market_sources)

    citation_file = await store.load_citations(document_path)
    links = citation_file.source_claim_links

    assert [link.citation_number for link in links] == [1, 2]
    assert links[0].claim_text == "The market grew by 15% according to a recent report."
    assert links[0].original_offset == 0
    assert links[1].original_offset == TEXT.index("Solar")
    assert citation_file.citations[0].usages[0].claim == links[0].claim_text


@pytest.mark.asyncio
async def test_reattaching_annotated_text_is_stable(service, store, document_path, market_sources):
    first = await service.attach_citations(document_path, TEXT, market_sources)
    second = await service.attach_citations(document_path, first.annotated_text, market_sources)

    citation_file = await store.load_citations(document_path)
    assert second.annotated_text == first.annotated_text
    assert second.total_citations == 2
    assert len(citation_file.source_claim_links) == 2
    assert [len(c.usages) for c in citation_file.citations] == [1, 1]


@pytest.mark.asyncio
async def test_usages_follow_claims_after_reattach_and_edit(service, store, document_path, market_sources):
    first = await service.attach_citations(document_path, TEXT, market_sources)
    await service.attach_citations(document_path, first.annotated_text, market_sources)
    edited = "New intro sentence added here. " + first.annotated_text

    result = await service.relocate_citations_after_edit(document_path, edited)

    citation_file = await store.load_citations(document_path)
    assert (result.relocated, result.lost) == (2, 0)
    assert [[u.offset for u in c.usages] for c in citation_file.citations] == [
        [edited.index("The market")],
        [edited.index("Solar")],
    ]


@pytest.mark.asyncio
async def test_low_relevance_sources_are_ignored(service, document_path, market_sources):
    sources = [market_sources[0], market_sources[1].model_copy(update={"relevance_score": 0.3})]

    result = await service.attach_citations(document_path, TEXT, sources)

    assert result.total_citations == 1
    assert "[2]" not in result.annotated_text


@pytest.mark.asyncio
async def test_sources_without_score_count_as_relevant(service, document_path, market_sources):
    sources = [s.model_copy(update={"relevance_score": None}) for s in market_sources]

    result = await service.attach_citations(
        document_path, TEXT, sources, AttachmentOptions(min_relevance=0.99)
    )

    assert result.total_citations == 2


@pytest.mark.asyncio
async def test_markers_can_be_disabled(service, document_path, market_sources):
    result = await service.attach_citations(
        document_path, TEXT, market_sources, AttachmentOptions(insert_markers=False)
    )

    assert result.annotated_text == TEXT
    assert result.total_citations == 2


@pytest.mark.asyncio
async def test_no_claims_leaves_text_unchanged(service, document_path):
    text = "I hope you enjoy reading this short note."

    result = await service.attach_citations(document_path, text, [])

    assert result.annotated_text == text
    assert result.claims == []
    assert result.total_citations == 0


@pytest.mark.asyncio
async def test_relocate_after_edit(service, store, document_path, market_sources):
    first = await service.attach_citations(document_path, TEXT, market_sources)
    edited = "A new opening line.\n\n" + first.annotated_text

    result = await service.relocate_citations_after_edit(document_path, edited)

    links = await service.get_source_claim_links(document_path)
    assert (result.relocated, result.lost) == (2, 0)
    assert links[0].original_offset == edited.index("The market")
    assert links[0].original_line == 3
    assert links[1].original_offset == edited.index("Solar")


@pytest.mark.asyncio
async def test_relocate_without_links(service, document_path):
    result = await service.relocate_citations_after_edit(document_path, "Anything at all.")

    assert (result.relocated, result.lost) == (0, 0)


@pytest.mark.asyncio
async def test_cleanup_orphaned_links(service, store, document_path, market_sources):
    result = await service.attach_citations(document_path, TEXT, market_sources)
    await store.remove_citation(document_path, result.added_citations[0].id)

    assert await service.cleanup_orphaned_links(document_path) == 1
    links = await service.get_source_claim_links(document_path)
    assert [link.citation_number for link in links] == [2]


def test_convert_research_citations():
    sources = CitationAttachmentService.convert_research_citations(
        [
            {"url": "https://a.example", "title": "A", "snippet": "alpha"},
            {"url": "https://b.example", "domain": "b.example"},
            {"url": "https://c.example"},
        ],
        "perplexity",
    )

    assert [s.relevance_score for s in sources] == pytest.approx([1.0, 0.9, 0.8])
    assert [s.title for s in sources] == ["A", "b.example", "Unknown Source"]
    assert sources[0].content == "alpha"
    assert all(s.provider == CitationProvider.PERPLEXITY for s in sources)
    assert sources[0].id.startswith("perplexity-0-")
    assert isinstance(sources[0], RAGSource)
