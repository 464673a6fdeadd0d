"""
JSON sidecar citation store.

Each document ``notes/plan.md`` owns ``notes/plan.citations.json`` holding its
numbered citations, their usages and the source-claim links that tie claims
back to the citations supporting them.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from evidence_integrity.models import (
    AddCitationInput,
    Citation,
    CitationFile,
    CitationUpdate,
    CitationUsage,
)
from evidence_integrity.citation.markers import strip_markers
from evidence_integrity.models.citations import utc_now_iso

logger = logging.getLogger(__name__)

CITATION_FILE_SUFFIX = ".citations.json"


class CitationStoreError(Exception):
    """Raised when a citation sidecar exists but cannot be read or parsed."""

    pass


class JsonCitationStore:
    """
    Load and save per-document citation files.

    Read-modify-write operations take a per-document ``asyncio.Lock`` so two
    attachments to the same document cannot interleave their saves.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, document_path: str) -> asyncio.Lock:
        key = str(Path(document_path).resolve())
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @staticmethod
    def get_citation_file_path(document_path: str) -> Path:
        path = Path(document_path)
        return path.with_name(path.stem + CITATION_FILE_SUFFIX)

    async def load_citations(self, document_path: str) -> CitationFile:
        """
        Load a document's citations.

        Returns:
            The stored file, or a fresh empty one if no sidecar exists

        Raises:
            CitationStoreError: If the sidecar is unreadable or malformed
        """
        file_path = self.get_citation_file_path(document_path)
        if not file_path.exists():
            return CitationFile(document_path=document_path)
        try:
            raw = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
            return CitationFile.model_validate_json(raw)
        except (OSError, ValidationError, ValueError) as exc:
            raise CitationStoreError(f"Cannot load citations from {file_path}: {exc}") from exc

    async def save_citations(self, document_path: str, citation_file: CitationFile) -> None:
        file_path = self.get_citation_file_path(document_path)
        citation_file.updated_at = utc_now_iso()
        payload = citation_file.model_dump_json(indent=2)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(file_path.write_text, payload, encoding="utf-8")
        logger.debug(f"Saved {len(citation_file.citations)} citations to {file_path}")

    @staticmethod
    def _new_usage(data: AddCitationInput) -> Optional[CitationUsage]:
        if not data.claim:
            return None
        return CitationUsage(claim=data.claim, line=data.line, offset=data.offset)

    @staticmethod
    def record_usage(citation: Citation, usage: CitationUsage) -> CitationUsage:
        """Append a usage, or move the existing one for the same claim (markers ignored)."""
        claim = strip_markers(usage.claim)
        for existing in citation.usages:
            if strip_markers(existing.claim) == claim:
                existing.offset = usage.offset
                existing.line = usage.line
                return existing
        citation.usages.append(usage)
        return usage

    @staticmethod
    def register_citation(citation_file: CitationFile, data: AddCitationInput) -> Citation:
        """Add to an in-memory file; an already-registered URL gains a usage instead."""
        usage = JsonCitationStore._new_usage(data)
        for existing in citation_file.citations:
            if existing.url == data.url:
                if usage is not None:
                    JsonCitationStore.record_usage(existing, usage)
                return existing

        citation = Citation(
            number=citation_file.next_number,
            url=data.url,
            title=data.title,
            authors=data.authors,
            date=data.date,
            publisher=data.publisher,
            source=data.source,
            usages=[usage] if usage is not None else [],
        )
        citation_file.citations.append(citation)
        citation_file.next_number += 1
        return citation

    async def add_citation(self, document_path: str, data: AddCitationInput) -> Citation:
        async with self.lock_for(document_path):
            citation_file = await self.load_citations(document_path)
            citation = self.register_citation(citation_file, data)
            await self.save_citations(document_path, citation_file)
        return citation

    async def add_citations(self, document_path: str, items: Iterable[AddCitationInput]) -> List[Citation]:
        async with self.lock_for(document_path):
            citation_file = await self.load_citations(document_path)
            added = [self.register_citation(citation_file, data) for data in items]
            await self.save_citations(document_path, citation_file)
        return added

    async def update_citation(
        self, document_path: str, citation_id: str, updates: CitationUpdate
    ) -> Optional[Citation]:
        async with self.lock_for(document_path):
            citation_file = await self.load_citations(document_path)
            for citation in citation_file.citations:
                if citation.id == citation_id:
                    for field, value in updates.model_dump(exclude_unset=True).items():
                        setattr(citation, field, value)
                    await self.save_citations(document_path, citation_file)
                    return citation
        return None

    async def remove_citation(self, document_path: str, citation_id: str) -> bool:
        """
        Remove a citation.

        Remaining citations keep their numbers and ``next_number`` is left
        alone, so a number is never handed out twice.
        """
        async with self.lock_for(document_path):
            citation_file = await self.load_citations(document_path)
            remaining = [c for c in citation_file.citations if c.id != citation_id]
            if len(remaining) == len(citation_file.citations):
                return False
            citation_file.citations = remaining
            await self.save_citations(document_path, citation_file)
        return True

    async def add_usage(self, document_path: str, citation_id: str, usage: CitationUsage) -> bool:
        async with self.lock_for(document_path):
            citation_file = await self.load_citations(document_path)
            for citation in citation_file.citations:
                if citation.id == citation_id:
                    citation.usages.append(usage)
                    await self.save_citations(document_path, citation_file)
                    return True
        return False

    async def get_citation_by_number(self, document_path: str, number: int) -> Optional[Citation]:
        citation_file = await self.load_citations(document_path)
        return next((c for c in citation_file.citations if c.number == number), None)

    async def has_citations(self, document_path: str) -> bool:
        return await self.get_citation_count(document_path) > 0

    async def get_citation_count(self, document_path: str) -> int:
        citation_file = await self.load_citations(document_path)
        return len(citation_file.citations)

    async def delete_citation_file(self, document_path: str) -> bool:
        file_path = self.get_citation_file_path(document_path)
        async with self.lock_for(document_path):
            if not file_path.exists():
                return False
            file_path.unlink()
        logger.info(f"Deleted citation file {file_path}")
        return True
