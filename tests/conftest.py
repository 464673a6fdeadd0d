"""
Pytest configuration and fixtures.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Make the package importable without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))

from evidence_integrity.citation.store import JsonCitationStore
from evidence_integrity.models import RAGSource, VerificationQuery, VerifiedCitationData
from evidence_integrity.search.cache import VerificationCache


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """In-memory bibliographic provider that records its calls."""

    def __init__(
        self,
        name: str,
        doi_records: Optional[Dict[str, VerifiedCitationData]] = None,
        search_results: Optional[List[VerifiedCitationData]] = None,
        error: Optional[Exception] = None,
    ):
        self.name = name
        self.doi_records = doi_records or {}
        self.search_results = search_results or []
        self.error = error
        self.doi_calls: List[str] = []
        self.search_calls: List[VerificationQuery] = []

    async def lookup_doi(self, doi: str) -> Optional[VerifiedCitationData]:
        self.doi_calls.append(doi)
        if self.error is not None:
            raise self.error
        return self.doi_records.get(doi)

    async def search(self, query: VerificationQuery, rows: int = 5) -> List[VerifiedCitationData]:
        self.search_calls.append(query)
        if self.error is not None:
            raise self.error
        return list(self.search_results)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock) -> VerificationCache:
    return VerificationCache(cache_dir=str(tmp_path / "cache"), clock=clock)


@pytest.fixture
def store() -> JsonCitationStore:
    return JsonCitationStore()


@pytest.fixture
def document_path(tmp_path) -> str:
    path = tmp_path / "notes" / "plan.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    return str(path)


@pytest.fixture
def attention_record() -> VerifiedCitationData:
    return VerifiedCitationData(
        doi="10.5555/attention",
        title="Attention Is All You Need",
        authors=["Ashish Vaswani", "Noam Shazeer"],
        year=2017,
        venue="Advances in Neural Information Processing Systems",
    )


@pytest.fixture
def market_sources() -> List[RAGSource]:
    return [
        RAGSource(
            id="s1",
            url="https://example.com/market-report",
            title="Annual Market Report",
            content="The market grew 15% according to the annual industry report.",
            relevance_score=0.9,
        ),
        RAGSource(
            id="s2",
            url="https://example.com/solar",
            title="Solar Outlook",
            content="Solar capacity in Europe increased 40% last year.",
            relevance_score=0.8,
        ),
    ]


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider
