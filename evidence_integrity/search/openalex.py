"""OpenAlex connector using direct HTTP (api_key in URL when one is configured)."""

from __future__ import annotations

from typing import Any, List, Optional

from evidence_integrity.models import VerificationQuery, VerifiedCitationData
from evidence_integrity.search.base import BibliographicConnector

_DOI_URL_PREFIX = "https://doi.org/"


def _inverted_index_to_text(idx: dict[str, list[int]] | None) -> str | None:
    """Convert OpenAlex abstract_inverted_index to plaintext."""
    if not idx:
        return None
    pairs = sorted((pos, word) for word, positions in idx.items() for pos in positions)
    return " ".join(word for _, word in pairs)


class OpenAlexConnector(BibliographicConnector):
    name = "openalex"
    base_url = "https://api.openalex.org/works"

    def __init__(self, *args: Any, api_key: Optional[str] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._api_key = api_key.strip() if api_key else None

    def _params(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        params = {"mailto": self.contact_email}
        if self._api_key:
            params["api_key"] = self._api_key
        if extra:
            params.update(extra)
        return params

    @staticmethod
    def _to_record(work: dict[str, Any]) -> VerifiedCitationData:
        authors: List[str] = []
        for item in work.get("authorships") or []:
            name = (item.get("author") or {}).get("display_name")
            if name:
                authors.append(str(name))

        doi = work.get("doi")
        if isinstance(doi, str) and doi.lower().startswith(_DOI_URL_PREFIX):
            doi = doi[len(_DOI_URL_PREFIX):]

        source = (work.get("primary_location") or {}).get("source") or {}
        abstract = work.get("abstract")
        if abstract is None:
            abstract = _inverted_index_to_text(work.get("abstract_inverted_index"))
        year = work.get("publication_year")
        return VerifiedCitationData(
            doi=doi,
            title=work.get("title") or work.get("display_name"),
            authors=authors,
            year=int(year) if year is not None else None,
            publication_date=work.get("publication_date"),
            venue=source.get("display_name"),
            publisher=source.get("host_organization_name"),
            openalex_id=work.get("id"),
            cited_by_count=work.get("cited_by_count"),
            abstract=abstract,
            type=work.get("type"),
        )

    async def lookup_doi(self, doi: str) -> Optional[VerifiedCitationData]:
        """Fetch one work by DOI; None when OpenAlex has no record."""
        payload = await self._get_json(f"{self.base_url}/doi:{doi}", params=self._params())
        if payload is None:
            return None
        return self._parse_record(payload)

    async def search(self, query: VerificationQuery, rows: int = 5) -> List[VerifiedCitationData]:
        """Full-text search on the title (or authors when there is no title)."""
        self._require_searchable(query)
        text = query.title or " ".join(query.authors)

        extra = {"search": text, "per_page": str(rows)}
        if query.year:
            extra["filter"] = f"publication_year:{query.year}"

        payload = await self._get_json(self.base_url, params=self._params(extra))
        if payload is None:
            return []
        return [self._parse_record(work) for work in payload.get("results") or [] if isinstance(work, dict)]
