"""
Attach citations to generated text and keep claim links valid across edits.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from evidence_integrity.citation.claims import ClaimExtractor
from evidence_integrity.citation.markers import CITATION_REF_PREFIX, insert_markers, strip_markers
from evidence_integrity.citation.relocation import RelocationEngine, context_hash
from evidence_integrity.citation.store import JsonCitationStore
from evidence_integrity.models import (
    AddCitationInput,
    AttachmentOptions,
    AttachmentResult,
    Citation,
    CitationFile,
    CitationProvider,
    CitationUsage,
    ExtractedClaim,
    RAGSource,
    RelocationResult,
    SourceClaimLink,
)
from evidence_integrity.utils.structured_log import log_relocation

logger = logging.getLogger(__name__)


def _citation_refs(claim: ExtractedClaim, url_to_number: Mapping[str, int], sources: Mapping[str, RAGSource]) -> List[str]:
    refs = []
    for source_id in claim.source_ids:
        source = sources.get(source_id)
        if source is not None and source.url in url_to_number:
            refs.append(f"{CITATION_REF_PREFIX}{url_to_number[source.url]}")
        else:
            refs.append(source_id)
    return refs


def _store_links(citation_file: CitationFile, claims: Iterable[ExtractedClaim]) -> int:
    """Record one link per (citation, claim), markers ignored; an existing link is moved, not duplicated."""
    by_number = {c.number: c for c in citation_file.citations}
    existing = {(link.citation_id, strip_markers(link.claim_text)): link for link in citation_file.source_claim_links}
    added = 0
    for claim in claims:
        for ref in claim.source_ids:
            if not ref.startswith(CITATION_REF_PREFIX):
                continue
            citation = by_number.get(int(ref[len(CITATION_REF_PREFIX):]))
            if citation is None:
                continue
            key = (citation.id, strip_markers(claim.text))
            link = existing.get(key)
            if link is not None:
                link.original_offset = claim.start_offset
                link.original_line = claim.line
                link.confidence = claim.confidence
                continue
            link = SourceClaimLink(
                citation_id=citation.id,
                citation_number=citation.number,
                claim_text=claim.text,
                original_offset=claim.start_offset,
                original_line=claim.line,
                context_hash=context_hash(claim.text),
                confidence=claim.confidence,
            )
            citation_file.source_claim_links.append(link)
            existing[key] = link
            added += 1
    return added


class CitationAttachmentService:
    """
    Attach RAG sources to generated text as numbered citations.

    All reads and writes of one document's citation file happen under that
    document's store lock.
    """

    def __init__(
        self,
        store: JsonCitationStore,
        extractor: Optional[ClaimExtractor] = None,
        relocation: Optional[RelocationEngine] = None,
    ):
        self.store = store
        self.extractor = extractor or ClaimExtractor()
        self.relocation = relocation or RelocationEngine()

    async def attach_citations(
        self,
        document_path: str,
        generated_text: str,
        sources: Sequence[RAGSource],
        options: Optional[AttachmentOptions] = None,
    ) -> AttachmentResult:
        """
        Register relevant sources as citations and annotate the text.

        Args:
            document_path: Document the citations belong to
            generated_text: Freshly generated text
            sources: Candidate evidence
            options: Marker insertion and relevance settings

        Returns:
            Annotated text, the claims (source IDs rewritten to ``cit:<n>``),
            the citations touched and the document's citation total
        """
        options = options or AttachmentOptions()
        relevant = [
            s for s in sources
            if (s.relevance_score if s.relevance_score is not None else 1.0) >= options.min_relevance
        ]
        extractor = self.extractor
        if extractor.max_sources_per_claim != options.max_citations_per_claim:
            extractor = ClaimExtractor(
                classifier=extractor.classifier,
                max_sources_per_claim=options.max_citations_per_claim,
                min_source_score=extractor.min_source_score,
            )
        claims = extractor.extract_claims(generated_text, relevant)

        async with self.store.lock_for(document_path):
            citation_file = await self.store.load_citations(document_path)

            added: List[Citation] = []
            for source in relevant:
                source_claims = [c for c in claims if source.id in c.source_ids]
                first = source_claims[0] if source_claims else None
                citation = JsonCitationStore.register_citation(
                    citation_file,
                    AddCitationInput(
                        url=source.url,
                        title=source.title,
                        authors=source.authors,
                        date=source.date,
                        publisher=source.publisher,
                        source=source.provider,
                        claim=first.text if first else None,
                        offset=first.start_offset if first else None,
                        line=first.line if first else None,
                    ),
                )
                for claim in source_claims[1:]:
                    JsonCitationStore.record_usage(
                        citation, CitationUsage(claim=claim.text, offset=claim.start_offset, line=claim.line)
                    )
                if citation not in added:
                    added.append(citation)

            url_to_number = {c.url: c.number for c in citation_file.citations}
            sources_by_id = {s.id: s for s in relevant}
            claims = [
                claim.model_copy(update={"source_ids": _citation_refs(claim, url_to_number, sources_by_id)})
                for claim in claims
            ]
            links_added = _store_links(citation_file, claims)
            await self.store.save_citations(document_path, citation_file)

        annotated = generated_text
        if options.insert_markers and added:
            annotated = insert_markers(generated_text, claims, url_to_number, relevant)

        logger.info(
            f"Attached {len(added)} citations and {links_added} claim links to {document_path}"
        )
        return AttachmentResult(
            annotated_text=annotated,
            claims=claims,
            added_citations=added,
            total_citations=len(citation_file.citations),
        )

    async def relocate_citations_after_edit(self, document_path: str, new_text: str) -> RelocationResult:
        async with self.store.lock_for(document_path):
            citation_file = await self.store.load_citations(document_path)
            if not citation_file.source_claim_links:
                return RelocationResult()
            result = self.relocation.relocate(citation_file, new_text)
            await self.store.save_citations(document_path, citation_file)

        log_relocation(document_path, result.relocated, result.lost)
        if result.lost:
            logger.info(f"{result.lost} claim links in {document_path} could not be relocated")
        return result

    async def get_source_claim_links(self, document_path: str) -> List[SourceClaimLink]:
        citation_file = await self.store.load_citations(document_path)
        return citation_file.source_claim_links

    async def cleanup_orphaned_links(self, document_path: str) -> int:
        """Drop links whose citation no longer exists; returns how many were removed."""
        async with self.store.lock_for(document_path):
            citation_file = await self.store.load_citations(document_path)
            citation_ids = {c.id for c in citation_file.citations}
            kept = [link for link in citation_file.source_claim_links if link.citation_id in citation_ids]
            removed = len(citation_file.source_claim_links) - len(kept)
            if removed:
                citation_file.source_claim_links = kept
                await self.store.save_citations(document_path, citation_file)
        return removed

    @staticmethod
    def convert_research_citations(
        citations: Sequence[Dict[str, str]],
        provider: CitationProvider,
    ) -> List[RAGSource]:
        """
        Turn a research response's citation list into RAG sources.

        Each item may carry ``url``, ``title``, ``snippet`` and ``domain``. List
        order is taken as relevance order.
        """
        provider = CitationProvider(provider)
        stamp = int(time.time() * 1000)
        return [
            RAGSource(
                id=f"{provider.value}-{index}-{stamp}",
                url=item["url"],
                title=item.get("title") or item.get("domain") or "Unknown Source",
                publisher=item.get("domain"),
                content=item.get("snippet") or "",
                relevance_score=max(0.0, 1.0 - index * 0.1),
                provider=provider,
            )
            for index, item in enumerate(citations)
        ]
