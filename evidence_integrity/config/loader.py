"""YAML and env loader with fail-fast validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from evidence_integrity.models import SettingsConfig

DEFAULT_SETTINGS_PATH = "config/settings.yaml"

# Env var -> (section, field) in SettingsConfig.
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "CROSSREF_EMAIL": ("verification", "contact_email"),
    "OPENALEX_API_KEY": ("verification", "openalex_api_key"),
    "EVIDENCE_CACHE_DIR": ("verification", "cache_dir"),
}


def _read_yaml(path: str) -> dict:
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with resolved.open("r", encoding="utf-8") as file_obj:
        loaded = yaml.safe_load(file_obj) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Expected object at root of YAML file: {path}")
    return loaded


def apply_env_overrides(raw: dict) -> dict:
    """Copy of ``raw`` with values from set environment variables applied."""
    merged = {section: dict(values or {}) for section, values in raw.items()}
    for env_key, (section, field) in _ENV_OVERRIDES.items():
        value = os.getenv(env_key)
        if value:
            merged.setdefault(section, {})[field] = value.strip()
    return merged


def load_settings(path: Optional[str] = None) -> SettingsConfig:
    """
    Load settings.

    With no path, defaults are used (plus environment overrides). A path that
    does not exist raises FileNotFoundError.
    """
    load_dotenv()
    raw = _read_yaml(path) if path is not None else {}
    return SettingsConfig.model_validate(apply_env_overrides(raw))
