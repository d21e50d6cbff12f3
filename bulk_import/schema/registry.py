from __future__ import annotations

from ..models.field_spec import EntityType, FieldKind, FieldSpec, ImportSchema

"""Schema registry: the fixed column contract of every importable entity.

Column order here is the column order of the generated templates. Lookups
are pure; asking for an entity that is not registered is a programming
error and raises UnknownEntityError.
"""

__all__ = [
    "UnknownEntityError",
    "PARTY_SCHEMA",
    "PRODUCT_SCHEMA",
    "get_schema",
    "parse_entity_type",
]


class UnknownEntityError(LookupError):
    """Raised when a schema is requested for an entity type that has none."""


PARTY_SCHEMA = ImportSchema(
    entity=EntityType.PARTY,
    plural="Parties",
    sheet_title="Parties Template",
    fields=(
        FieldSpec("s_no", "S.No", False, aliases=("sno", "s no"), width=10),
        FieldSpec("party_name", "Party Name", True, aliases=("company name",), width=30),
        FieldSpec("owner_name", "Owner Name", True, width=25),
        FieldSpec("pan_vat", "PAN/VAT Number", True, aliases=("tax id", "pan/vat"), width=20),
        FieldSpec(
            "phone", "Phone Number", True, kind=FieldKind.PHONE, min_length=10,
            aliases=("phone",), width=20,
        ),
        FieldSpec("party_type", "Party Type", False, width=20),
        FieldSpec("email", "Email", False, kind=FieldKind.EMAIL, width=30),
        FieldSpec("address", "Address", False, width=40),
        FieldSpec("description", "Description", False, width=40),
    ),
)

PRODUCT_SCHEMA = ImportSchema(
    entity=EntityType.PRODUCT,
    plural="Products",
    sheet_title="Products Template",
    fields=(
        FieldSpec("s_no", "S.No", False, aliases=("sno", "s no"), width=10),
        FieldSpec("product_name", "Product Name", True, aliases=("productname",), width=40),
        FieldSpec("category", "Category", True, width=25),
        FieldSpec(
            "price", "Price", True, kind=FieldKind.NUMBER, minimum=0,
            hint="Required (Number)", width=20,
        ),
        FieldSpec(
            "qty", "Stock (Qty)", True, kind=FieldKind.NUMBER, integer=True, minimum=0,
            aliases=("stock", "qty"), hint="Required (Number)", width=20,
        ),
        FieldSpec("serial_no", "Serial No", False, aliases=("serialno", "serial"), width=25),
    ),
)

_REGISTRY: dict[EntityType, ImportSchema] = {
    EntityType.PARTY: PARTY_SCHEMA,
    EntityType.PRODUCT: PRODUCT_SCHEMA,
}


def parse_entity_type(value: EntityType | str) -> EntityType:
    """Accept an EntityType or its value ("party", "Product", ...)."""
    if isinstance(value, EntityType):
        return value
    try:
        return EntityType(str(value).strip().lower())
    except ValueError as e:
        raise UnknownEntityError(f"unknown entity type: {value!r}") from e


def get_schema(entity_type: EntityType | str) -> ImportSchema:
    entity = parse_entity_type(entity_type)
    try:
        return _REGISTRY[entity]
    except KeyError as e:  # pragma: no cover - every EntityType is registered
        raise UnknownEntityError(f"no schema registered for {entity.value}") from e
