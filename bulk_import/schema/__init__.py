from .registry import PARTY_SCHEMA, PRODUCT_SCHEMA, UnknownEntityError, get_schema, parse_entity_type

__all__ = [
    "PARTY_SCHEMA",
    "PRODUCT_SCHEMA",
    "UnknownEntityError",
    "get_schema",
    "parse_entity_type",
]
