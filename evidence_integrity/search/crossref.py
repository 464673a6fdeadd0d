"""Crossref connector."""

from __future__ import annotations

from typing import Any, List, Optional
from urllib.parse import quote

from evidence_integrity.models import VerificationQuery, VerifiedCitationData
from evidence_integrity.search.base import BibliographicConnector
from evidence_integrity.search.exceptions import ParsingError

_DATE_FIELDS = ("published-print", "published-online", "issued", "created")


def _first(values: Any) -> Optional[str]:
    if isinstance(values, list) and values:
        return str(values[0])
    if isinstance(values, str) and values:
        return values
    return None


def _date_parts(item: dict[str, Any]) -> Optional[list[int]]:
    for field in _DATE_FIELDS:
        parts = (item.get(field) or {}).get("date-parts") or []
        if parts and parts[0] and isinstance(parts[0][0], int):
            return [p for p in parts[0] if isinstance(p, int)]
    return None


class CrossrefConnector(BibliographicConnector):
    name = "crossref"
    base_url = "https://api.crossref.org/works"

    @staticmethod
    def _to_record(item: dict[str, Any]) -> VerifiedCitationData:
        authors: List[str] = []
        for author in item.get("author") or []:
            given = str(author.get("given") or "").strip()
            family = str(author.get("family") or "").strip()
            full = " ".join(part for part in [given, family] if part)
            if not full:
                full = str(author.get("name") or "").strip()
            if full:
                authors.append(full)

        parts = _date_parts(item)
        year = parts[0] if parts else None
        publication_date = "-".join(f"{p:02d}" if i else str(p) for i, p in enumerate(parts)) if parts else None

        cited_by = item.get("is-referenced-by-count")
        return VerifiedCitationData(
            doi=item.get("DOI"),
            title=_first(item.get("title")),
            authors=authors,
            year=year,
            publication_date=publication_date,
            venue=_first(item.get("container-title")),
            publisher=item.get("publisher"),
            cited_by_count=int(cited_by) if isinstance(cited_by, int) else None,
            abstract=item.get("abstract"),
            type=item.get("type"),
        )

    async def lookup_doi(self, doi: str) -> Optional[VerifiedCitationData]:
        """Fetch one work by DOI; None when Crossref has no record."""
        payload = await self._get_json(
            f"{self.base_url}/{quote(doi, safe='/')}", params={"mailto": self.contact_email}
        )
        if payload is None:
            return None
        message = payload.get("message")
        if not isinstance(message, dict):
            raise ParsingError("crossref response has no message object")
        return self._parse_record(message)

    async def search(self, query: VerificationQuery, rows: int = 5) -> List[VerifiedCitationData]:
        """
        Bibliographic search on title and authors, filtered to the query year.

        Raises:
            InvalidQueryError: If the query has neither title nor authors
        """
        self._require_searchable(query)

        params: dict[str, str] = {"rows": str(rows), "mailto": self.contact_email}
        if query.title:
            params["query.bibliographic"] = query.title
        if query.authors:
            params["query.author"] = " ".join(query.authors)
        if query.year:
            params["filter"] = f"from-pub-date:{query.year},until-pub-date:{query.year}"

        payload = await self._get_json(self.base_url, params=params)
        if payload is None:
            return []
        items = (payload.get("message") or {}).get("items") or []
        return [self._parse_record(item) for item in items if isinstance(item, dict)]
