"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Sequence

from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from evidence_integrity.citation.store import CitationStoreError
from evidence_integrity.config.loader import load_settings
from evidence_integrity.models import (
    AttachmentOptions,
    DocumentReviewQueue,
    RAGSource,
    ReviewScanOptions,
    SettingsConfig,
    VerificationQuery,
    VerificationResult,
)
from evidence_integrity.pipeline import EvidencePipeline
from evidence_integrity.utils.logging_config import LogLevel, setup_logging
from evidence_integrity.utils.structured_log import configure_run_logging

_STATUS_STYLE = {
    "verified": "green",
    "partial": "yellow",
    "unverified": "red",
    "error": "red",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="evidence-integrity")
    parser.add_argument("--settings", default=None, help="Settings YAML (default: built-in defaults)")
    parser.add_argument("--verbose", "-v", action="store_true")
    parser.add_argument("--debug", "-d", action="store_true")
    sub = parser.add_subparsers(dest="command")

    verify = sub.add_parser("verify", help="Verify one citation against Crossref and OpenAlex")
    verify.add_argument("--doi")
    verify.add_argument("--title")
    verify.add_argument("--author", action="append", dest="authors", help="Repeat for each author")
    verify.add_argument("--year", type=int)
    verify.add_argument("--venue")
    verify.add_argument("--timeout", type=float, help="Give up after this many seconds")

    sub.add_parser("cache-stats", help="Show verification cache statistics")
    sub.add_parser("cache-clear", help="Delete every verification cache entry")

    scan = sub.add_parser("scan", help="Build the review queue for a document")
    scan.add_argument("document")
    scan.add_argument("--threshold", type=float, help="Low-confidence threshold in [0, 1]")
    scan.add_argument(
        "--no-partial",
        action="store_const",
        const=False,
        dest="include_partial",
        help="Do not flag partially verified citations (default: review settings)",
    )
    scan.add_argument("--max-items", type=int, help="Queue size limit (default: review settings)")

    relocate = sub.add_parser("relocate", help="Re-anchor claim links after the document was edited")
    relocate.add_argument("document")

    attach = sub.add_parser("attach", help="Attach sources to generated text as numbered citations")
    attach.add_argument("document")
    attach.add_argument("--sources", required=True, help="JSON file with a list of sources")
    attach.add_argument("--text", help="File with the generated text (default: the document itself)")
    attach.add_argument("--min-relevance", type=float)
    attach.add_argument("--no-markers", action="store_true")
    attach.add_argument("--write", action="store_true", help="Write the annotated text back to the document")

    return parser


def _print_verification(console: Console, result: VerificationResult) -> None:
    style = _STATUS_STYLE.get(result.status.value, "white")
    table = Table(title="Verification Result")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("status", f"[{style}]{result.status.value}[/]")
    table.add_row("confidence", f"{result.confidence:.2f}")
    table.add_row("source", result.source.value if result.source else "")
    table.add_row("from_cache", str(result.from_cache))
    if result.error:
        table.add_row("error", result.error)
    matched = result.matched_data
    if matched is not None:
        table.add_row("doi", matched.doi or "")
        table.add_row("title", matched.title or "")
        table.add_row("authors", ", ".join(matched.authors[:5]))
        table.add_row("year", str(matched.year or ""))
        table.add_row("venue", matched.venue or "")
    console.print(table)


def _print_queue(console: Console, queue: DocumentReviewQueue) -> None:
    table = Table(title=f"Review queue: {queue.document_path}")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Confidence", justify="right")
    table.add_column("Item", style="white")
    for item in queue.items:
        if item.type == "low_confidence":
            table.add_row(item.id, item.type, f"{item.confidence:.2f}", item.original_text[:80])
        else:
            label = f"[{item.citation_number}] {item.citation_title or item.citation_url}"
            table.add_row(item.id, item.type, f"{item.verification_confidence:.2f}", label[:80])
    console.print(table)
    s = queue.stats
    console.print(
        f"[dim]{s.total} items: {s.low_confidence_count} low-confidence, "
        f"{s.unverified_citation_count} unverified, {s.partial_citation_count} partial[/]"
    )


async def _run_verify(pipeline: EvidencePipeline, args: argparse.Namespace, console: Console) -> int:
    query = VerificationQuery(
        doi=args.doi, title=args.title, authors=args.authors, year=args.year, venue=args.venue
    )
    if query.is_empty():
        console.print("[red]Error:[/] Give at least one of --doi, --title, --author, --year, --venue.")
        return 1
    await pipeline.initialize()
    if args.timeout is not None:
        result = await pipeline.verifier.verify(query, timeout=args.timeout)
    else:
        result = await pipeline.verify_citation(query)
    _print_verification(console, result)
    return 0 if result.status.value in ("verified", "partial") else 1


async def _run_cache_stats(pipeline: EvidencePipeline, console: Console) -> int:
    await pipeline.initialize()
    stats = await pipeline.get_cache_stats()
    table = Table(title="Verification Cache")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white", justify="right")
    table.add_row("total_entries", str(stats.total_entries))
    table.add_row("valid_entries", str(stats.valid_entries))
    table.add_row("expired_entries", str(stats.expired_entries))
    table.add_row("cache_size_bytes", str(stats.cache_size_bytes))
    console.print(table)
    return 0


async def _run_cache_clear(pipeline: EvidencePipeline, console: Console) -> int:
    deleted = await pipeline.clear_cache()
    console.print(f"[green]Cleared[/] {deleted} cache entries")
    return 0


async def _run_scan(pipeline: EvidencePipeline, args: argparse.Namespace, console: Console) -> int:
    content = Path(args.document).read_text(encoding="utf-8")
    options = ReviewScanOptions(
        confidence_threshold=args.threshold,
        include_partial_citations=args.include_partial,
        max_items=args.max_items,
    )
    await pipeline.initialize()
    queue = await pipeline.scan_document(args.document, content, options)
    _print_queue(console, queue)
    return 0


async def _run_relocate(pipeline: EvidencePipeline, args: argparse.Namespace, console: Console) -> int:
    content = Path(args.document).read_text(encoding="utf-8")
    result = await pipeline.relocate_citations_after_edit(args.document, content)
    style = "yellow" if result.lost else "green"
    console.print(f"[{style}]Relocated {result.relocated}, lost {result.lost}[/]")
    return 0


async def _run_attach(pipeline: EvidencePipeline, args: argparse.Namespace, console: Console) -> int:
    raw_sources = json.loads(Path(args.sources).read_text(encoding="utf-8"))
    sources = TypeAdapter(list[RAGSource]).validate_python(raw_sources)
    text_path = Path(args.text) if args.text else Path(args.document)
    text = text_path.read_text(encoding="utf-8")

    defaults = pipeline.settings.attachment
    options = AttachmentOptions(
        insert_markers=defaults.insert_markers and not args.no_markers,
        min_relevance=args.min_relevance if args.min_relevance is not None else defaults.min_relevance,
        max_citations_per_claim=defaults.max_citations_per_claim,
    )
    result = await pipeline.attach_citations(args.document, text, sources, options)
    if args.write:
        Path(args.document).write_text(result.annotated_text, encoding="utf-8")
    else:
        console.print(result.annotated_text)
    console.print(
        f"[green]{len(result.claims)} claims, {len(result.added_citations)} citations attached "
        f"({result.total_citations} total)[/]"
    )
    return 0


def _configure_logging(settings: SettingsConfig, args: argparse.Namespace) -> None:
    setup_logging(
        level=LogLevel(settings.logging.level),
        log_to_file=settings.logging.log_file is not None,
        log_file=settings.logging.log_file,
        verbose=args.verbose,
        debug=args.debug,
    )
    if settings.logging.structured_log_dir:
        configure_run_logging(settings.logging.structured_log_dir)


async def _dispatch(pipeline: EvidencePipeline, args: argparse.Namespace, console: Console) -> int:
    if args.command == "verify":
        return await _run_verify(pipeline, args, console)
    if args.command == "cache-stats":
        return await _run_cache_stats(pipeline, console)
    if args.command == "cache-clear":
        return await _run_cache_clear(pipeline, console)
    if args.command == "scan":
        return await _run_scan(pipeline, args, console)
    if args.command == "relocate":
        return await _run_relocate(pipeline, args, console)
    if args.command == "attach":
        return await _run_attach(pipeline, args, console)
    console.print(f"[red]Error:[/] Unknown command '{args.command}'")
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    console = Console()
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = load_settings(args.settings)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/] {e}")
        return 1
    _configure_logging(settings, args)

    pipeline = EvidencePipeline.from_settings(settings)
    try:
        return asyncio.run(_dispatch(pipeline, args, console))
    except (CitationStoreError, FileNotFoundError, ValidationError, ValueError) as e:
        console.print(f"[red]Error:[/] {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
