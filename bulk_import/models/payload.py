from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Creation payloads sent to the remote bulk-import endpoints.

Field names in ``to_dict`` follow the remote API contract (camelCase).
"""

__all__ = [
    "PartyPayload",
    "ProductPayload",
    "Payload",
]


@dataclass(frozen=True)
class PartyPayload:
    company_name: str
    owner_name: str
    pan_vat: str
    phone: str
    email: str
    address: str
    party_type: str
    description: str
    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "companyName": self.company_name,
            "ownerName": self.owner_name,
            "panVat": self.pan_vat,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "partyType": self.party_type,
            "description": self.description,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass(frozen=True)
class ProductPayload:
    product_name: str
    category: str
    price: float
    qty: int
    serial_no: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "productName": self.product_name,
            "category": self.category,
            "price": self.price,
            "qty": self.qty,
            "serialNo": self.serial_no,
        }


Payload = PartyPayload | ProductPayload
