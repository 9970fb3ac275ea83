import json
from decimal import Decimal

import pytest

from invoicing.models.invoice import InvoiceForm, InvoiceLine
from invoicing.services.invoice_service import (
    InvoiceService, InvoiceValidationError, validate_for_submission,
)
from invoicing.services.settings import load_settings


def test_create_invoice_persists_and_numbers(invoices, two_line_form, tmp_path):
    inv = invoices.create_invoice(two_line_form)
    assert inv.invoice_number == "INV-000001"
    assert inv.grand_total == Decimal("44.80")
    assert inv.items[1].total == Decimal("15.00")

    stored = json.loads((tmp_path / "invoices.json").read_text(encoding="utf-8"))
    assert stored[0]["grand_total"] == "44.80"
    assert load_settings(tmp_path).numbering.invoice_seq == 2

    second = invoices.create_invoice(two_line_form)
    assert second.invoice_number == "INV-000002"


def test_create_invoice_leaves_form_untouched(invoices, two_line_form):
    invoices.create_invoice(two_line_form)
    assert two_line_form.subtotal == 0


def test_list_and_get_round_trip(invoices, two_line_form):
    inv = invoices.create_invoice(two_line_form)
    again = InvoiceService(invoices.base_dir)
    assert [i.id for i in again.list_invoices()] == [inv.id]
    loaded = again.get_by_id(inv.id)
    assert loaded.customer.name == "Nile Pharma"
    assert loaded.balance_due() == Decimal("44.80")
    assert again.get_by_id("missing") is None


def test_numbering_prefix_comes_from_settings(tmp_path, two_line_form):
    (tmp_path / "settings.json").write_text(
        json.dumps({"numbering": {"invoice_prefix": "EG-", "invoice_seq": 120}}), encoding="utf-8"
    )
    inv = InvoiceService(tmp_path).create_invoice(two_line_form)
    assert inv.invoice_number == "EG-000120"


def test_draft_limit_above_four_is_rejected_in_settings(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({"drafts": {"max_drafts": 9}}), encoding="utf-8")
    assert load_settings(tmp_path).drafts.max_drafts == 4


def test_corrupt_settings_fall_back_to_defaults(tmp_path):
    (tmp_path / "settings.json").write_text("{oops", encoding="utf-8")
    s = load_settings(tmp_path)
    assert s.financial.tax_rate == Decimal("14")
    assert s.drafts.max_drafts == 4


@pytest.mark.parametrize("mutate, message", [
    (lambda f: setattr(f, "customer", f.customer.model_copy(update={"id": None, "name": ""})), "customer"),
    (lambda f: setattr(f, "items", []), "at least one item"),
    (lambda f: setattr(f.items[0], "product_id", 0), "select a product"),
    (lambda f: setattr(f.items[1], "quantity", 0), "valid quantity"),
])
def test_submission_checks(two_line_form, mutate, message):
    mutate(two_line_form)
    with pytest.raises(InvoiceValidationError) as exc:
        validate_for_submission(two_line_form)
    assert any(message in e for e in exc.value.errors)


def test_invalid_form_is_not_persisted(invoices):
    form = InvoiceForm.default()
    with pytest.raises(InvoiceValidationError) as exc:
        invoices.create_invoice(form)
    assert len(exc.value.errors) == 2
    assert invoices.list_invoices() == []


def test_customer_name_without_id_is_enough(invoices):
    form = InvoiceForm(customer={"name": "Walk-in"}, items=[InvoiceLine(product_id=1, quantity=1, unit_price=1)])
    assert invoices.create_invoice(form).customer.id is None


def test_stored_invoice_with_unknown_keys_still_loads(tmp_path):
    (tmp_path / "invoices.json").write_text(json.dumps([{
        "id": "old-1", "invoice_number": "INV-000009", "customer": {"name": "Legacy"},
        "grand_total": "12.00", "pdf_path": "/tmp/old.pdf", "created_at": "2024-05-01T10:00:00+00:00",
    }]), encoding="utf-8")
    [inv] = InvoiceService(tmp_path).list_invoices()
    assert inv.invoice_number == "INV-000009"
    assert not hasattr(inv, "pdf_path")
