"""Unit tests for the JSON sidecar citation store."""

from pathlib import Path

import pytest

from evidence_integrity.citation.store import CitationStoreError, JsonCitationStore
from evidence_integrity.models import AddCitationInput, CitationUpdate, CitationUsage


def test_sidecar_path_sits_next_to_document():
    path = JsonCitationStore.get_citation_file_path("notes/plan.md")

    assert path == Path("notes/plan.citations.json")


@pytest.mark.asyncio
async def test_missing_sidecar_loads_empty(store, document_path):
    citation_file = await store.load_citations(document_path)

    assert citation_file.document_path == document_path
    assert citation_file.citations == []
    assert citation_file.next_number == 1
    assert not await store.has_citations(document_path)


@pytest.mark.asyncio
async def test_numbers_are_assigned_in_order(store, document_path):
    first = await store.add_citation(document_path, AddCitationInput(url="https://a.example"))
    second = await store.add_citation(document_path, AddCitationInput(url="https://b.example"))

    assert (first.number, second.number) == (1, 2)
    assert await store.get_citation_count(document_path) == 2
    assert JsonCitationStore.get_citation_file_path(document_path).exists()


@pytest.mark.asyncio
async def test_duplicate_url_adds_usage_instead_of_citation(store, document_path):
    await store.add_citation(document_path, AddCitationInput(url="https://a.example", claim="First claim."))
    again = await store.add_citation(
        document_path, AddCitationInput(url="https://a.example", claim="Second claim.", offset=40, line=2)
    )

    citation_file = await store.load_citations(document_path)
    assert again.number == 1
    assert len(citation_file.citations) == 1
    assert [u.claim for u in citation_file.citations[0].usages] == ["First claim.", "Second claim."]


@pytest.mark.asyncio
async def test_same_claim_with_marker_moves_existing_usage(store, document_path):
    await store.add_citation(
        document_path, AddCitationInput(url="https://a.example", claim="Prices rose sharply.", offset=0, line=1)
    )
    await store.add_citation(
        document_path, AddCitationInput(url="https://a.example", claim="Prices rose sharply [1].", offset=25, line=3)
    )

    usages = (await store.load_citations(document_path)).citations[0].usages
    assert [(u.claim, u.offset, u.line) for u in usages] == [("Prices rose sharply.", 25, 3)]


@pytest.mark.asyncio
async def test_removal_never_renumbers(store, document_path):
    first, second = await store.add_citations(
        document_path,
        [AddCitationInput(url="https://a.example"), AddCitationInput(url="https://b.example")],
    )

    assert await store.remove_citation(document_path, first.id)
    third = await store.add_citation(document_path, AddCitationInput(url="https://c.example"))

    assert (await store.get_citation_by_number(document_path, 2)).id == second.id
    assert third.number == 3
    assert await store.get_citation_by_number(document_path, 1) is None


@pytest.mark.asyncio
async def test_remove_unknown_citation(store, document_path):
    assert not await store.remove_citation(document_path, "cit_missing")


@pytest.mark.asyncio
async def test_update_citation(store, document_path):
    citation = await store.add_citation(document_path, AddCitationInput(url="https://a.example"))

    updated = await store.update_citation(document_path, citation.id, CitationUpdate(title="New title"))

    assert updated.title == "New title"
    assert updated.url == "https://a.example"
    assert await store.update_citation(document_path, "cit_missing", CitationUpdate(title="x")) is None


@pytest.mark.asyncio
async def test_add_usage(store, document_path):
    citation = await store.add_citation(document_path, AddCitationInput(url="https://a.example"))

    assert await store.add_usage(document_path, citation.id, CitationUsage(claim="A claim.", offset=3))
    reloaded = await store.get_citation_by_number(document_path, 1)

    assert reloaded.usages[0].claim == "A claim."


@pytest.mark.asyncio
async def test_corrupt_sidecar_raises(store, document_path):
    JsonCitationStore.get_citation_file_path(document_path).write_text("{not json", encoding="utf-8")

    with pytest.raises(CitationStoreError):
        await store.load_citations(document_path)


@pytest.mark.asyncio
async def test_delete_citation_file(store, document_path):
    await store.add_citation(document_path, AddCitationInput(url="https://a.example"))

    assert await store.delete_citation_file(document_path)
    assert not await store.delete_citation_file(document_path)
    assert await store.get_citation_count(document_path) == 0
