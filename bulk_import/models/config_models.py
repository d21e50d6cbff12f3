from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the bulk import tool.

Built by bulk_import.config.loader from config/import.yml plus environment
overrides. Every field has a default so the template and preview commands
work without a config file.
"""

__all__ = [
    "ApiConfig",
    "OrganizationConfig",
    "FallbackLocation",
    "ImportConfig",
]


@dataclass(frozen=True)
class ApiConfig:
    """Remote bulk-import API settings.

    Environment variables CRM_API_BASE_URL / CRM_API_TOKEN take precedence.
    """
    base_url: str | None = None
    token: str | None = None
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class OrganizationConfig:
    """Tenant the rows are imported into."""
    id: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class FallbackLocation:
    """Location applied to parties imported without an address (Kathmandu city center)."""
    address: str = "Kathmandu, Nepal"
    latitude: float = 27.7172
    longitude: float = 85.3240


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object."""
    api: ApiConfig = field(default_factory=ApiConfig)
    organization: OrganizationConfig = field(default_factory=OrganizationConfig)
    preview_rows: int = 5
    error_display_limit: int = 10
    fallback_location: FallbackLocation = field(default_factory=FallbackLocation)
    null_sentinels: frozenset[str] = frozenset()  # upper-cased cell strings read as blank
