"""Structured logging for a machine-parseable audit trail."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
from structlog.processors import JSONRenderer
from structlog.typing import Processor

_configured = False
_logger: structlog.BoundLogger | None = None


def configure_run_logging(log_dir: str) -> None:
    """One-time setup at process start. Writes JSON lines to {log_dir}/app.jsonl."""
    global _configured, _logger
    if _configured:
        return
    app_log_path = Path(log_dir) / "app.jsonl"
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handle = open(app_log_path, "a", encoding="utf-8")

    def _file_logger_factory(*args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file_handle)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        JSONRenderer(),
    ]
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=_file_logger_factory,
        cache_logger_on_first_use=True,
    )
    _configured = True
    _logger = structlog.get_logger()


def bind_document(document_path: str) -> None:
    """Bind document context so every log line names the document it concerns."""
    structlog.contextvars.bind_contextvars(document_path=document_path)


def unbind_document() -> None:
    structlog.contextvars.unbind_contextvars("document_path")


def log_api_call(
    source: str,
    status: str,
    *,
    call_type: str | None = None,
    latency_ms: int | None = None,
    records: int | None = None,
    error: str | None = None,
) -> None:
    """Log an outbound provider call."""
    payload: dict[str, Any] = {"source": source, "status": status}
    if call_type is not None:
        payload["call_type"] = call_type
    if latency_ms is not None:
        payload["latency_ms"] = latency_ms
    if records is not None:
        payload["records"] = records
    if error is not None:
        payload["error"] = error
    if _logger is not None:
        _logger.info("api_call", **payload)


def log_rate_limit_wait(service: str, tokens: float, max_tokens: float) -> None:
    """Log rate limit wait event."""
    if _logger is not None:
        _logger.info("rate_limit_wait", service=service, tokens=round(tokens, 3), max_tokens=max_tokens)


def log_verification(
    status: str,
    confidence: float,
    source: str | None,
    from_cache: bool,
    error: str | None = None,
) -> None:
    """Log the outcome of one citation verification."""
    payload: dict[str, Any] = {
        "status": status,
        "confidence": round(confidence, 4),
        "source": source,
        "from_cache": from_cache,
    }
    if error is not None:
        payload["error"] = error
    if _logger is not None:
        _logger.info("verification", **payload)


def log_relocation(document_path: str, relocated: int, lost: int) -> None:
    if _logger is not None:
        _logger.info("relocation", document_path=document_path, relocated=relocated, lost=lost)


def log_review_action(document_path: str, item_id: str, action: str) -> None:
    if _logger is not None:
        _logger.info("review_action", document_path=document_path, item_id=item_id, action=action)


def load_events_from_jsonl(path: str) -> list[dict[str, Any]]:
    """Read an app.jsonl file back as a list of event dicts.

    Skips lines that fail to parse.
    """
    events: list[dict[str, Any]] = []
    log_path = Path(path)
    if not log_path.exists():
        return events
    for line in log_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict):
            events.append(entry)
    return events
