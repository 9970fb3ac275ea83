import json
from decimal import Decimal

import pytest

from invoicing.models.invoice import InvoiceForm, InvoiceLine
from invoicing.services.catalog_service import CatalogService
from invoicing.services.customer_service import CustomerService
from invoicing.services.draft_service import DraftService
from invoicing.services.import_service import ImportService
from invoicing.services.invoice_service import InvoiceService
from invoicing.services.scheduler import ManualScheduler
from invoicing.storage.kv_store import MemoryStore


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    # nothing may touch the real data/ directory
    monkeypatch.setenv("INVOICING_DATA_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def two_line_form():
    return InvoiceForm(
        customer={"id": 7, "name": "Nile Pharma"},
        items=[
            InvoiceLine(product_id=1, product_name="Paracetamol 500mg", quantity=2, unit_price=Decimal("10.00")),
            InvoiceLine(product_id=2, product_name="Ethanol 96%", quantity=3, unit_price=Decimal("5.00")),
        ],
        tax_rate=14,
        vat_rate=14,
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def drafts(store, scheduler):
    return DraftService(store, scheduler)


@pytest.fixture
def catalog(tmp_path):
    (tmp_path / "products.json").write_text(json.dumps([
        {"id": 1, "name": "Paracetamol 500mg", "category": "Analgesics", "selling_price": "10.00", "sku": "PCM-500", "barcode": "6221000000011"},
        {"id": 2, "name": "Ethanol 96%", "category": "Solvents", "selling_price": "5.00", "sku": "ETH-96"},
        {"id": 3, "name": "Ascorbic Acid", "category": "Vitamins", "selling_price": "7.25", "sku": "VC-1", "active": False},
    ]), encoding="utf-8")
    return CatalogService(base_dir=tmp_path)


@pytest.fixture
def customers(tmp_path):
    (tmp_path / "customers.json").write_text(json.dumps([
        {"id": 7, "name": "Nile Pharma", "company": "Nile Pharma SAE", "phone": "+20 2 1234", "email": "orders@nilepharma.com", "tax_number": "123-456-789"},
        {"id": 8, "name": "Delta Labs", "company": "Delta Laboratories"},
    ]), encoding="utf-8")
    return CustomerService(tmp_path / "customers.json")


@pytest.fixture
def importer(catalog, customers):
    return ImportService(catalog, customers)


@pytest.fixture
def invoices(tmp_path):
    return InvoiceService(tmp_path)
