from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import ApiConfig, FallbackLocation, ImportConfig, OrganizationConfig

"""Config loader.

Responsibilities:
- Load YAML config/import.yml (or the path given with --config)
- Validate it against the bundled JSON schema (config_schema.json)
- Apply defaults for every missing key
- Apply CRM_* environment overrides (the CLI loads .env first)
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ENV_OVERRIDES",
    "load_config",
    "apply_env_overrides",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

# environment variable -> (section, field)
ENV_OVERRIDES = {
    "CRM_API_BASE_URL": ("api", "base_url"),
    "CRM_API_TOKEN": ("api", "token"),
    "CRM_ORGANIZATION_ID": ("organization", "id"),
    "CRM_ORGANIZATION_NAME": ("organization", "name"),
}


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails validation (wrong types, unknown keys, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path)
        prefix = f"{location}: " if location else ""
        raise ConfigError(f"config validation failed: {prefix}{e.message}") from e


def _build_config(data: dict[str, Any]) -> ImportConfig:
    api_raw = data.get("api") or {}
    org_raw = data.get("organization") or {}
    api = ApiConfig(
        base_url=api_raw.get("base_url"),
        token=api_raw.get("token"),
        timeout_seconds=float(api_raw.get("timeout_seconds", ApiConfig.timeout_seconds)),
    )
    org_id = org_raw.get("id")
    organization = OrganizationConfig(
        id=str(org_id) if org_id is not None else None,
        name=org_raw.get("name"),
    )
    fallback = FallbackLocation()
    if "fallback_location" in data:
        fb = data["fallback_location"]
        fallback = FallbackLocation(
            address=fb["address"], latitude=float(fb["latitude"]), longitude=float(fb["longitude"])
        )
    sentinels = frozenset(s.strip().upper() for s in data.get("null_sentinels") or [] if s.strip())
    return ImportConfig(
        api=api,
        organization=organization,
        preview_rows=data.get("preview_rows", ImportConfig.preview_rows),
        error_display_limit=data.get("error_display_limit", ImportConfig.error_display_limit),
        fallback_location=fallback,
        null_sentinels=sentinels,
    )


def load_config(path: Path | None = None, *, required: bool = True) -> ImportConfig:
    """Load and validate the YAML config.

    A missing file raises ConfigError when ``required``; otherwise the
    defaults are returned.
    """
    path = path if path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        return ImportConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)
    return _build_config(data)


def apply_env_overrides(cfg: ImportConfig, environ: Mapping[str, str] | None = None) -> ImportConfig:
    """Return ``cfg`` with non-empty CRM_* environment variables applied."""
    environ = os.environ if environ is None else environ
    sections: dict[str, dict[str, str]] = {"api": {}, "organization": {}}
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            sections[section][key] = value
    return replace(
        cfg,
        api=replace(cfg.api, **sections["api"]),
        organization=replace(cfg.organization, **sections["organization"]),
    )
