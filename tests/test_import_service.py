from decimal import Decimal

from invoicing.models.invoice import InvoiceForm


QUOTATION = {
    "id": 41,
    "quotationNumber": "QUO-0041",
    "type": "finished",
    "customerId": 7,
    "items": [
        {"productId": 1, "productName": "Paracetamol 500mg", "quantity": 2, "unitPrice": 10},
        {"name": "Ethanol 96%", "qty": 3, "price": "5.00"},
        {"productName": "ETH-96", "quantity": 1, "unit_price": 4},
        {"productName": "Unknown powder", "quantity": 1, "unitPrice": 99},
        {"quantity": 1, "unitPrice": 1},
    ],
    "discountType": "percentage",
    "discountValue": 10,
    "taxRate": 14,
}


def test_quotation_import_maps_lines_and_collects_unresolved(importer):
    res = importer.import_quotation(InvoiceForm.default(), QUOTATION)
    form = res.form

    assert [it.product_id for it in form.items] == [1, 2, 2]
    assert res.imported == 3
    assert res.unresolved == ["Unknown powder", "Unknown Item"]
    assert not res.ok
    assert "2 items could not be mapped: Unknown powder, Unknown Item" in res.message()

    assert form.items[1].unit_price == Decimal("5.00")
    assert form.items[1].quantity == 3
    assert form.items[0].type == "finished"


def test_quotation_import_reruns_totals(importer):
    form = importer.import_quotation(InvoiceForm.default(), QUOTATION).form
    assert form.subtotal == Decimal("39.00")
    assert form.discount_type == "percentage"
    assert form.discount_amount == Decimal("3.90")
    assert form.tax_amount == Decimal("4.91")
    assert form.grand_total == Decimal("44.92")


def test_quotation_customer_resolved_from_directory(importer):
    form = importer.import_quotation(InvoiceForm.default(), QUOTATION).form
    assert form.customer.id == 7
    assert form.customer.company == "Nile Pharma SAE"
    assert form.customer.tax_number == "123-456-789"


def test_quotation_customer_by_name_with_embedded_fallback(importer):
    q = {
        "customer": {"name": "delta laboratories", "address": "10th of Ramadan City"},
        "items": [{"productId": 2, "quantity": 1, "unitPrice": 5}],
    }
    form = importer.import_quotation(InvoiceForm.default(), q).form
    assert form.customer.id == 8
    assert form.customer.name == "Delta Labs"
    assert form.customer.address == "10th of Ramadan City"


def test_quotation_without_discount_keeps_form_settings(importer):
    base = InvoiceForm.default(vat_rate=0)
    q = {"quotationNumber": "QUO-2", "items": [{"productId": 1, "quantity": 1, "unitPrice": 10}]}
    res = importer.import_quotation(base, q)
    assert res.ok
    assert res.form.discount_type == "none"
    assert res.form.tax_rate == Decimal("14")
    assert res.form.grand_total == Decimal("11.40")
    assert base.items[0].product_id == 0  # source form untouched


def test_order_import_one_line_per_material(importer):
    order = {
        "orderNumber": "REF-2024-007",
        "type": "refining",
        "customerName": "Delta Labs",
        "batchNumber": "B-778",
        "revenue": 900,
        "materials": [
            {"id": 11, "name": "Crude glycerin", "quantity": 4, "unitOfMeasure": "L"},
            {"id": 12, "name": "Activated carbon", "quantity": 2, "unitPrice": 12.5},
        ],
    }
    res = importer.import_order(InvoiceForm.default(), order)
    form = res.form
    assert res.imported == 2
    assert form.customer.name == "Delta Labs"
    assert form.customer.company == "Delta Labs"
    assert [it.unit_price for it in form.items] == [Decimal("900"), Decimal("12.5")]
    assert form.items[0].unit_of_measure == "L"
    assert form.items[0].batch_no == "B-778"
    assert form.items[1].total == Decimal("25.00")
    assert form.subtotal == Decimal("3625.00")


def test_order_without_materials_gets_fallback_line(importer):
    res = importer.import_order(InvoiceForm.default(), {"orderNumber": "MFG-3", "totalCost": "150.75"})
    [line] = res.form.items
    assert line.product_id == 0
    assert line.product_name == "Order MFG-3"
    assert line.total == Decimal("150.75")
