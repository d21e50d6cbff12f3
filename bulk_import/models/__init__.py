"""Domain models for the spreadsheet bulk import pipeline.

This package contains the data classes shared by the schema registry,
reader, validator, transformer and orchestrator.
"""

from .config_models import ApiConfig, FallbackLocation, ImportConfig, OrganizationConfig
from .field_spec import EntityType, FieldKind, FieldSpec, ImportSchema
from .import_result import ImportResult, PipelineSnapshot, PreviewRow
from .payload import PartyPayload, Payload, ProductPayload
from .pipeline_state import CompletionStatus, PipelineState
from .row_data import RawRow, RowError, ValidatedRow, ValidationReport

__all__ = [
    # Configuration models
    "ApiConfig",
    "FallbackLocation",
    "ImportConfig",
    "OrganizationConfig",
    # Schema models
    "EntityType",
    "FieldKind",
    "FieldSpec",
    "ImportSchema",
    # Processing models
    "RawRow",
    "RowError",
    "ValidatedRow",
    "ValidationReport",
    "PartyPayload",
    "ProductPayload",
    "Payload",
    # Results
    "CompletionStatus",
    "ImportResult",
    "PipelineSnapshot",
    "PipelineState",
    "PreviewRow",
]
