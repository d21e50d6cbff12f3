# Shared pytest fixtures
from __future__ import annotations

import tempfile
from io import BytesIO
from pathlib import Path

import pandas as pd
import pytest

from bulk_import.logging.init import reset_logging

PARTY_LABELS = [
    "S.No",
    "Party Name",
    "Owner Name",
    "PAN/VAT Number",
    "Phone Number",
    "Party Type",
    "Email",
    "Address",
    "Description",
]
PRODUCT_LABELS = ["S.No", "Product Name", "Category", "Price", "Stock (Qty)", "Serial No"]


def make_xlsx(labels: list[str], rows: list[list], hints: list[str] | None = None) -> bytes:
    """Spreadsheet bytes laid out like a filled template: labels, hints, data rows."""
    hints = hints if hints is not None else ["Required"] * len(labels)
    frame = pd.DataFrame([hints, *rows], columns=labels)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name="Sheet1", index=False)
    return buffer.getvalue()


def party_row(n: int, phone: str = "9841234567", address: str | None = "Lalitpur") -> list:
    return [n, f"Party {n}", f"Owner {n}", f"PAN{n:04d}", phone, "Retailer", f"p{n}@example.com", address, None]


def product_row(n: int, price=100.5, qty=10) -> list:
    return [n, f"Product {n}", "Beverages", price, qty, f"SN-{n}"]


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _no_crm_env(monkeypatch):
    for var in ("CRM_API_BASE_URL", "CRM_API_TOKEN", "CRM_ORGANIZATION_ID", "CRM_ORGANIZATION_NAME", "CRM_DRY_RUN"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def sample_config_yaml() -> str:
    return """api:
  base_url: http://crm.test/api
  token: secret-token
  timeout_seconds: 5
organization:
  id: org-42
  name: Acme Traders
preview_rows: 5
error_display_limit: 10
fallback_location:
  address: Kathmandu, Nepal
  latitude: 27.7172
  longitude: 85.3240
null_sentinels: ["N/A"]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def party_file(temp_workdir: Path) -> Path:
    """Five parties; the third one (row index 2) has a 7-digit phone number."""
    rows = [party_row(n) for n in range(1, 6)]
    rows[2] = party_row(3, phone="9841234")
    f = temp_workdir / "data" / "parties.xlsx"
    f.write_bytes(make_xlsx(PARTY_LABELS, rows))
    return f


@pytest.fixture()
def empty_party_file(temp_workdir: Path) -> Path:
    f = temp_workdir / "data" / "empty.xlsx"
    f.write_bytes(make_xlsx(PARTY_LABELS, []))
    return f
