"""
Pytest configuration and shared fixtures for the PO ingestion test suite.
"""
import io
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


PO_CSV = """PO Number,VendorName,OrderedQty,ReceivedQty,PoAmount
PO-1,Acme,100,95,1500.00
PO-2,Globex,50,50,"2,400.50"
PO-2,Globex,20,0,310
"""

LANDING_CSV = """Key,SKU ID,Product Name,MRP,Category,Cases,Merchants,Landing Rate
K-1,SKU-1,Basmati Rice 5kg,650,Grocery,12,4,540.00
K-2,SKU-2,Sunflower Oil 1L,180,Grocery,24,6,149.50
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="po_ingest_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration with an isolated store file."""
    from config import Config

    # Keep a developer's config/pipeline_settings.json out of the tests
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    config = Config()
    config.output_dir = temp_dir / "output"
    config.db_path = temp_dir / "output" / "erp.db"
    config.store_name = "test-storage"
    config.ensure_output_dir()
    return config


@pytest.fixture
def test_db(test_config) -> "Database":
    """Provide a test database instance."""
    from pipeline.database import Database
    return Database(test_config.db_path)


@pytest.fixture
def store(test_db, test_config) -> "PersistedStore":
    """Provide an empty, rehydrated record store."""
    from pipeline.store import PersistedStore
    s = PersistedStore(test_db, test_config.store_name)
    s.rehydrate()
    return s


@pytest.fixture
def ingestor(store, test_config) -> "Ingestor":
    from pipeline.ingestor import Ingestor
    return Ingestor(store, test_config)


@pytest.fixture
def po_csv_bytes() -> bytes:
    return PO_CSV.encode("utf-8")


@pytest.fixture
def landing_csv_bytes() -> bytes:
    return LANDING_CSV.encode("utf-8")


@pytest.fixture
def po_csv_path(temp_dir: Path, po_csv_bytes: bytes) -> Path:
    """Write the sample PO CSV to disk."""
    path = temp_dir / "orders.csv"
    path.write_bytes(po_csv_bytes)
    return path


@pytest.fixture
def po_xlsx_bytes() -> bytes:
    """Build a small .xlsx workbook in memory, numbers stored as numbers."""
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.append(["PO Number", "VendorName", "OrderedQty", "ReceivedQty", "PoAmount"])
    ws.append(["PO-10", "Initech", 40, 30, 899.5])
    ws.append(["PO-11", "Initech", 10, 10, 120])
    ws.append(["PO-12", None, 5, 5, 50])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def make_po():
    """Factory for PurchaseOrderRecord with sensible defaults."""
    from models.purchase_order import PurchaseOrderRecord

    def _make(po_number="PO-1", vendor="Acme", ordered=0, received=0, amount=0.0, **kwargs):
        return PurchaseOrderRecord(
            po_number=po_number,
            vendor=vendor,
            ordered_qty=ordered,
            received_qty=received,
            amount=amount,
            **kwargs,
        )

    return _make


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
