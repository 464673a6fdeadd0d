from __future__ import annotations

import json
import logging

import pytest

from evidence_integrity.main import build_parser, main
from evidence_integrity.utils.logging_config import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()


def test_verify_arguments() -> None:
    parser = build_parser()

    args = parser.parse_args(
        ["verify", "--doi", "10.5555/x", "--author", "A. Smith", "--author", "B. Jones", "--year", "2020"]
    )

    assert args.command == "verify"
    assert args.doi == "10.5555/x"
    assert args.authors == ["A. Smith", "B. Jones"]
    assert args.year == 2020
    assert args.timeout is None


def test_scan_arguments() -> None:
    args = build_parser().parse_args(["-v", "scan", "notes/plan.md", "--threshold", "0.5", "--no-partial"])

    assert args.verbose
    assert args.document == "notes/plan.md"
    assert args.threshold == 0.5
    assert args.include_partial is False
    assert args.max_items is None


def test_scan_defaults_defer_to_settings() -> None:
    args = build_parser().parse_args(["scan", "notes/plan.md"])

    assert args.threshold is None
    assert args.include_partial is None
    assert args.max_items is None


def test_attach_requires_sources() -> None:
    parser = build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["attach", "notes/plan.md"])


def test_unknown_command_rejected() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["summarize"])


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 0
    assert "evidence-integrity" in capsys.readouterr().out


def test_verify_without_fields_fails(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("EVIDENCE_CACHE_DIR", str(tmp_path / "cache"))

    assert main(["verify"]) == 1


def test_missing_settings_file_fails(tmp_path) -> None:
    assert main(["--settings", str(tmp_path / "missing.yaml"), "cache-stats"]) == 1


def test_cache_stats_on_empty_cache(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("EVIDENCE_CACHE_DIR", str(tmp_path / "cache"))

    assert main(["cache-stats"]) == 0
    assert (tmp_path / "cache" / "verification_cache.db").exists()


def test_attach_writes_annotated_document(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("EVIDENCE_CACHE_DIR", str(tmp_path / "cache"))
    document = tmp_path / "plan.md"
    document.write_text("The market grew by 15% according to a recent report.", encoding="utf-8")
    sources = tmp_path / "sources.json"
    sources.write_text(
        json.dumps(
            [
                {
                    "id": "s1",
                    "url": "https://example.com/report",
                    "title": "Report",
                    "content": "The market grew 15% according to the annual report.",
                    "relevance_score": 0.9,
                }
            ]
        ),
        encoding="utf-8",
    )

    assert main(["attach", str(document), "--sources", str(sources), "--write"]) == 0

    assert document.read_text(encoding="utf-8") == "The market grew by 15% according to a recent report [1]."
    assert (tmp_path / "plan.citations.json").exists()
    assert main(["relocate", str(document)]) == 0


def test_attach_with_invalid_sources_fails(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("EVIDENCE_CACHE_DIR", str(tmp_path / "cache"))
    document = tmp_path / "plan.md"
    document.write_text("Text.", encoding="utf-8")
    sources = tmp_path / "sources.json"
    sources.write_text(json.dumps([{"id": "s1"}]), encoding="utf-8")

    assert main(["attach", str(document), "--sources", str(sources)]) == 1
