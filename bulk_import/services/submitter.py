from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import httpx

from ..models.field_spec import EntityType
from ..models.import_result import ImportResult
from ..models.payload import Payload

"""Batch submitter: hands the payload array to the remote bulk-create endpoint.

The remote result is authoritative. imported_count is not compared with the
number of payloads sent; a lower count means the server rejected some rows
and says why in ``errors``. There is no retry: a transport or server
failure raises SubmissionError and the whole flow has to be started again.
"""

__all__ = [
    "SubmissionError",
    "BatchSubmitter",
    "HttpBatchSubmitter",
    "LocalBatchSubmitter",
    "ENDPOINTS",
    "parse_import_result",
]

logger = logging.getLogger(__name__)

ENDPOINTS = {
    EntityType.PARTY: "/organizations/{organization_id}/parties/bulk-import",
    EntityType.PRODUCT: "/products/bulk-import",
}
_COUNT_KEYS = ("successfullyImported", "importedCount", "success")


class SubmissionError(Exception):
    """Raised when the remote call fails before any per-row result is known."""


class BatchSubmitter(Protocol):
    async def submit_batch(
        self, entity_type: EntityType, organization_id: str, payloads: Sequence[Payload]
    ) -> ImportResult: ...


def parse_import_result(data: Any) -> ImportResult:
    """Read ``{"success": n, "errors": [...]}`` and its variants.

    The count may be named successfullyImported / importedCount / success and
    the object may be wrapped in ``{"data": {...}}``.
    """
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    if not isinstance(data, dict):
        raise SubmissionError("malformed response from import service")
    count = None
    for key in _COUNT_KEYS:
        value = data.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            count = value
            break
    if count is None:
        raise SubmissionError("malformed response from import service: missing imported count")
    errors = data.get("errors") or []
    if not isinstance(errors, list):
        errors = [errors]
    return ImportResult(imported_count=count, errors=tuple(str(e) for e in errors))


class HttpBatchSubmitter:
    """POSTs payloads as JSON to the CRM API.

    ``transport`` is passed through to httpx (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def submit_batch(
        self, entity_type: EntityType, organization_id: str, payloads: Sequence[Payload]
    ) -> ImportResult:
        path = ENDPOINTS[entity_type].format(organization_id=organization_id)
        body = {
            "organizationId": organization_id,
            "items": [p.to_dict() for p in payloads],
        }
        logger.debug("POST %s items=%d", path, len(payloads))
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(path, json=body, headers=self._headers())
        except httpx.TimeoutException as e:
            raise SubmissionError(f"import service timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise SubmissionError(f"could not reach import service: {e}") from e

        if resp.status_code >= 400:
            raise SubmissionError(f"import service returned HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise SubmissionError("import service returned a non-JSON response") from e
        return parse_import_result(data)


class LocalBatchSubmitter:
    """Offline submitter for dry runs: accepts every payload and keeps the batches."""

    def __init__(self) -> None:
        self.batches: list[tuple[EntityType, str, list[Payload]]] = []

    async def submit_batch(
        self, entity_type: EntityType, organization_id: str, payloads: Sequence[Payload]
    ) -> ImportResult:
        self.batches.append((entity_type, organization_id, list(payloads)))
        logger.debug("dry-run batch entity=%s items=%d", entity_type.value, len(payloads))
        return ImportResult(imported_count=len(payloads), errors=())
