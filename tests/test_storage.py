import json
from decimal import Decimal

import pytest

from invoicing.models.product import Product
from invoicing.storage.json_repo import JsonRepository
from invoicing.storage.kv_store import JsonFileStore


def test_file_store_round_trip(tmp_path):
    path = tmp_path / "drafts.json"
    store = JsonFileStore(path)
    assert store.get("invoiceDrafts") is None
    store.set("invoiceDrafts", "[]")
    store.set("activeInvoiceId", "draft-1")
    assert JsonFileStore(path).get("activeInvoiceId") == "draft-1"
    store.remove("activeInvoiceId")
    assert json.loads(path.read_text(encoding="utf-8")) == {"invoiceDrafts": "[]"}


def test_file_store_skips_identical_writes(tmp_path):
    path = tmp_path / "drafts.json"
    store = JsonFileStore(path)
    store.set("k", "v")
    stamp = path.stat().st_mtime_ns
    store.set("k", "v")
    assert path.stat().st_mtime_ns == stamp


def test_file_store_keeps_corrupt_copy(tmp_path, caplog):
    path = tmp_path / "drafts.json"
    path.write_text("{broken", encoding="utf-8")
    store = JsonFileStore(path)
    with caplog.at_level("WARNING"):
        assert store.get("invoiceDrafts") is None
    assert (tmp_path / "drafts.corrupt.json").read_text(encoding="utf-8") == "{broken"
    assert "Corrupt store" in caplog.text


def test_repository_add_and_lookup(tmp_path):
    repo = JsonRepository(tmp_path / "products.json", entity_name="product")
    repo.add(Product(id=1, name="Paracetamol 500mg", selling_price=Decimal("10.5")))
    repo.add({"id": 2, "name": "Ethanol 96%"})

    assert repo.get_by_id("1")["selling_price"] == "10.5"
    assert repo.get_by_id(3) is None
    with pytest.raises(ValueError):
        repo.add({"id": 1, "name": "dup"})
    with pytest.raises(ValueError):
        repo.add({"name": "no id"})
    assert [r["id"] for r in JsonRepository(tmp_path / "products.json").list_all()] == [1, 2]


def test_repository_rotates_backups(tmp_path):
    repo = JsonRepository(tmp_path / "invoices.json", backup_keep=2)
    for i in range(5):
        repo.add({"id": str(i)})
    assert len(list(tmp_path.glob("invoices.*.bak.json"))) == 2


def test_repository_reads_corrupt_file_as_empty(tmp_path):
    path = tmp_path / "customers.json"
    path.write_text("[{", encoding="utf-8")
    repo = JsonRepository(path, entity_name="customer")
    assert repo.list_all() == []
    assert (tmp_path / "customers.corrupt.json").exists()
