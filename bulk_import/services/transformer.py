from __future__ import annotations

from collections.abc import Iterable

from ..models.config_models import FallbackLocation
from ..models.field_spec import EntityType
from ..models.payload import PartyPayload, Payload, ProductPayload
from ..models.row_data import ValidatedRow
from ..schema.registry import parse_entity_type

"""Payload transformer: validated rows -> remote creation payloads.

The only defaulting rule lives here. Map-based features downstream need
coordinates for every party, so every party is sent with the fallback
coordinates; a party without an address also gets the fallback address.
An address that was filled in is kept as given.

Input rows are valid by construction, so transform never fails and has no
state: the same rows always give equal payloads.
"""

__all__ = [
    "DEFAULT_FALLBACK",
    "transform",
    "apply_location_fallback",
]

DEFAULT_FALLBACK = FallbackLocation()


def _text(row: ValidatedRow, key: str) -> str:
    value = row.values.get(key)
    return "" if value is None else str(value)


def apply_location_fallback(
    address: str | None, fallback: FallbackLocation = DEFAULT_FALLBACK
) -> tuple[str, float, float]:
    """Return (address, latitude, longitude); only a blank address is replaced."""
    if address is None or not address.strip():
        return fallback.address, fallback.latitude, fallback.longitude
    return address.strip(), fallback.latitude, fallback.longitude


def _party_payload(row: ValidatedRow, fallback: FallbackLocation) -> PartyPayload:
    address, latitude, longitude = apply_location_fallback(row.values.get("address"), fallback)
    return PartyPayload(
        company_name=_text(row, "party_name"),
        owner_name=_text(row, "owner_name"),
        pan_vat=_text(row, "pan_vat"),
        phone=_text(row, "phone"),
        email=_text(row, "email"),
        address=address,
        party_type=_text(row, "party_type"),
        description=_text(row, "description"),
        latitude=latitude,
        longitude=longitude,
    )


def _product_payload(row: ValidatedRow) -> ProductPayload:
    serial_no = row.values.get("serial_no")
    return ProductPayload(
        product_name=_text(row, "product_name"),
        category=_text(row, "category"),
        price=float(row.values["price"]),
        qty=int(row.values["qty"]),
        serial_no=str(serial_no) if serial_no is not None else None,
    )


def transform(
    rows: Iterable[ValidatedRow],
    entity_type: EntityType | str,
    fallback: FallbackLocation = DEFAULT_FALLBACK,
) -> list[Payload]:
    entity = parse_entity_type(entity_type)
    if entity is EntityType.PARTY:
        return [_party_payload(row, fallback) for row in rows]
    return [_product_payload(row) for row in rows]
