from __future__ import annotations
import json
from decimal import Decimal
from typing import Optional

from pydantic import ValidationError
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QFormLayout, QComboBox, QTextEdit, QDialogButtonBox,
    QHBoxLayout, QPushButton, QTableWidget, QTableWidgetItem, QHeaderView,
    QDoubleSpinBox, QSpinBox, QLabel, QLineEdit, QTabBar, QWidget, QGroupBox,
    QMessageBox, QFileDialog
)
from PySide6.QtCore import Signal

from invoicing.models.invoice import InvoiceLine
from invoicing.services.catalog_service import CatalogService
from invoicing.services.draft_service import DraftCapacityExceeded
from invoicing.services.invoice_service import InvoiceValidationError
from invoicing.services.workflow_service import InvoiceWorkflow


def _money(v: Decimal) -> str:
    return f"{v:,.2f}"


def _dec(v: float) -> Decimal:
    return Decimal(str(round(v, 2)))


class _AddLineDialog(QDialog):
    """Pick a catalog product for a new invoice line."""
    def __init__(self, parent=None, catalog: CatalogService | None = None):
        super().__init__(parent)
        self.setWindowTitle("Add line")
        self.setModal(True)
        self.catalog = catalog or CatalogService()

        self.ed_search = QLineEdit(); self.ed_search.setPlaceholderText("Name, category or SKU")
        self.cb_item = QComboBox()
        self.sp_qty = QSpinBox(); self.sp_qty.setRange(1, 1_000_000); self.sp_qty.setValue(1)
        self.sp_price = QDoubleSpinBox(); self.sp_price.setRange(0.0, 1e9); self.sp_price.setDecimals(2)
        btns = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)

        form = QFormLayout()
        form.addRow("Search", self.ed_search)
        form.addRow("Product", self.cb_item)
        form.addRow("Quantity", self.sp_qty)
        form.addRow("Unit price", self.sp_price)

        lay = QVBoxLayout(self)
        lay.addLayout(form)
        lay.addWidget(btns)

        self.ed_search.textChanged.connect(self._refresh_items)
        self.cb_item.currentIndexChanged.connect(self._on_product)
        self._refresh_items()

        btns.accepted.connect(self.accept)
        btns.rejected.connect(self.reject)

    def _refresh_items(self):
        self.cb_item.clear()
        for p in self.catalog.search(self.ed_search.text()):
            self.cb_item.addItem(f"{p.name} ({p.sku or '—'}) — {_money(p.selling_price)}", p)

    def _on_product(self):
        p = self.cb_item.currentData()
        if p is not None:
            self.sp_price.setValue(float(p.selling_price))

    def get_line(self) -> Optional[InvoiceLine]:
        p = self.cb_item.currentData()
        if p is None:
            return None
        return InvoiceLine(
            product_id=p.id, product_name=p.name, category=p.category or "",
            batch_no=p.sku or "", unit_of_measure=p.unit_of_measure,
            quantity=self.sp_qty.value(), unit_price=_dec(self.sp_price.value()),
        )


class InvoiceEditor(QWidget):
    """Invoice creation screen: draft tabs on top, one form below."""

    invoiceCreated = Signal(object)

    def __init__(self, workflow: InvoiceWorkflow, catalog: CatalogService | None = None, parent=None):
        super().__init__(parent)
        self.workflow = workflow
        self.catalog = catalog or CatalogService()
        self._refreshing = False

        # drafts
        self.tabs = QTabBar()
        self.tabs.setTabsClosable(True)
        self.tabs.setExpanding(False)
        btn_new_draft = QPushButton("+ New invoice")
        btn_reset = QPushButton("Reset all")
        bar_drafts = QHBoxLayout()
        bar_drafts.addWidget(self.tabs, 1); bar_drafts.addWidget(btn_new_draft); bar_drafts.addWidget(btn_reset)

        # customer
        self.ed_cust_name = QLineEdit()
        self.ed_cust_company = QLineEdit()
        self.ed_cust_phone = QLineEdit()
        self.ed_cust_email = QLineEdit()
        self.ed_cust_address = QLineEdit()
        self.ed_cust_tax = QLineEdit()
        grp_cust = QGroupBox("Customer"); f_cust = QFormLayout(grp_cust)
        f_cust.addRow("Name", self.ed_cust_name)
        f_cust.addRow("Company", self.ed_cust_company)
        f_cust.addRow("Phone", self.ed_cust_phone)
        f_cust.addRow("Email", self.ed_cust_email)
        f_cust.addRow("Address", self.ed_cust_address)
        f_cust.addRow("Tax number (ETA)", self.ed_cust_tax)

        # lines
        self.tbl = QTableWidget(0, 6)
        self.tbl.setHorizontalHeaderLabels(["Product", "Category", "Batch", "Qty", "Unit price", "Total"])
        self.tbl.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.tbl.setSelectionBehavior(self.tbl.SelectionBehavior.SelectRows)
        self.tbl.setEditTriggers(self.tbl.EditTrigger.NoEditTriggers)
        btn_add = QPushButton("Add line")
        btn_del = QPushButton("Remove line")
        btn_imp_q = QPushButton("Import quotation…")
        btn_imp_o = QPushButton("Import order…")
        bar_lines = QHBoxLayout()
        for b in (btn_add, btn_del): bar_lines.addWidget(b)
        bar_lines.addStretch(1)
        for b in (btn_imp_q, btn_imp_o): bar_lines.addWidget(b)

        # discount / taxes / payment
        self.cb_discount = QComboBox(); self.cb_discount.addItems(["none", "percentage", "amount"])
        self.sp_discount = QDoubleSpinBox(); self.sp_discount.setRange(0.0, 1e9); self.sp_discount.setDecimals(2)
        self.sp_tax = QDoubleSpinBox(); self.sp_tax.setRange(0.0, 100.0); self.sp_tax.setSuffix(" %")
        self.sp_vat = QDoubleSpinBox(); self.sp_vat.setRange(0.0, 100.0); self.sp_vat.setSuffix(" %")
        self.cb_status = QComboBox(); self.cb_status.addItems(["unpaid", "partial", "paid"])
        self.cb_method = QComboBox(); self.cb_method.addItems(["", "cash", "visa", "cheque", "bank_transfer"])
        self.sp_paid = QDoubleSpinBox(); self.sp_paid.setRange(0.0, 1e12); self.sp_paid.setDecimals(2)
        self.ed_notes = QTextEdit(); self.ed_notes.setFixedHeight(60)
        grp_pay = QGroupBox("Discount, taxes & payment"); f_pay = QFormLayout(grp_pay)
        f_pay.addRow("Discount", self.cb_discount)
        f_pay.addRow("Discount value", self.sp_discount)
        f_pay.addRow("Tax rate", self.sp_tax)
        f_pay.addRow("VAT rate", self.sp_vat)
        f_pay.addRow("Payment status", self.cb_status)
        f_pay.addRow("Payment method", self.cb_method)
        f_pay.addRow("Amount paid", self.sp_paid)
        f_pay.addRow("Notes", self.ed_notes)

        self.lab_totals = QLabel()
        btn_submit = QPushButton("Create invoice")

        top = QHBoxLayout(); top.addWidget(grp_cust, 1); top.addWidget(grp_pay, 1)
        bottom = QHBoxLayout(); bottom.addWidget(self.lab_totals, 1); bottom.addWidget(btn_submit)

        lay = QVBoxLayout(self)
        lay.addLayout(bar_drafts)
        lay.addLayout(top)
        lay.addLayout(bar_lines)
        lay.addWidget(self.tbl, 1)
        lay.addLayout(bottom)

        # wiring
        btn_new_draft.clicked.connect(self._new_draft)
        btn_reset.clicked.connect(self._reset_all)
        self.tabs.currentChanged.connect(self._switch_draft)
        self.tabs.tabCloseRequested.connect(self._close_draft)
        for ed in (self.ed_cust_name, self.ed_cust_company, self.ed_cust_phone,
                   self.ed_cust_email, self.ed_cust_address, self.ed_cust_tax):
            ed.editingFinished.connect(self._customer_edited)
        btn_add.clicked.connect(self._add_line)
        btn_del.clicked.connect(self._del_line)
        btn_imp_q.clicked.connect(lambda: self._import("quotation"))
        btn_imp_o.clicked.connect(lambda: self._import("order"))
        self.cb_discount.currentTextChanged.connect(lambda v: self._edit(discount_type=v))
        self.sp_discount.valueChanged.connect(lambda v: self._edit(discount_value=_dec(v)))
        self.sp_tax.valueChanged.connect(lambda v: self._edit(tax_rate=_dec(v)))
        self.sp_vat.valueChanged.connect(lambda v: self._edit(vat_rate=_dec(v)))
        self.cb_status.currentTextChanged.connect(lambda v: self._edit(payment_status=v))
        self.cb_method.currentTextChanged.connect(lambda v: self._edit(payment_method=v or None))
        self.sp_paid.valueChanged.connect(lambda v: self._edit(amount_paid=_dec(v)))
        self.ed_notes.textChanged.connect(lambda: self._edit(notes=self.ed_notes.toPlainText()))
        btn_submit.clicked.connect(self._submit)

        self._refresh_tabs()
        self._refresh_form()

    # -------- UI helpers --------
    def _refresh_tabs(self):
        self._refreshing = True
        try:
            while self.tabs.count():
                self.tabs.removeTab(0)
            for d in self.workflow.drafts.drafts:
                idx = self.tabs.addTab(d.name)
                self.tabs.setTabData(idx, d.id)
                if d.id == self.workflow.drafts.active_id:
                    self.tabs.setCurrentIndex(idx)
            self.tabs.setTabsClosable(self.tabs.count() > 1)
        finally:
            self._refreshing = False

    def _refresh_form(self):
        f = self.workflow.form
        self._refreshing = True
        try:
            self.ed_cust_name.setText(f.customer.name)
            self.ed_cust_company.setText(f.customer.company)
            self.ed_cust_phone.setText(f.customer.phone)
            self.ed_cust_email.setText(f.customer.email or "")
            self.ed_cust_address.setText(f.customer.address)
            self.ed_cust_tax.setText(f.customer.tax_number)

            self.tbl.setRowCount(0)
            for ln in f.items:
                r = self.tbl.rowCount()
                self.tbl.insertRow(r)
                self.tbl.setItem(r, 0, QTableWidgetItem(ln.product_name or "—"))
                self.tbl.setItem(r, 1, QTableWidgetItem(ln.category))
                self.tbl.setItem(r, 2, QTableWidgetItem(ln.batch_no))
                self.tbl.setItem(r, 3, QTableWidgetItem(str(ln.quantity)))
                self.tbl.setItem(r, 4, QTableWidgetItem(_money(ln.unit_price)))
                self.tbl.setItem(r, 5, QTableWidgetItem(_money(ln.total)))
            self.tbl.resizeRowsToContents()

            self.cb_discount.setCurrentText(f.discount_type)
            self.sp_discount.setMaximum(100.0 if f.discount_type == "percentage" else 1e9)
            self.sp_discount.setEnabled(f.discount_type != "none")
            self.sp_discount.setValue(float(f.discount_value))
            self.sp_tax.setValue(float(f.tax_rate))
            self.sp_vat.setValue(float(f.vat_rate))
            self.cb_status.setCurrentText(f.payment_status)
            self.cb_method.setCurrentText(f.payment_method or "")
            self.sp_paid.setValue(float(f.amount_paid))
            self.sp_paid.setEnabled(f.payment_status == "partial")
            if self.ed_notes.toPlainText() != f.notes:
                self.ed_notes.setPlainText(f.notes)
        finally:
            self._refreshing = False
        self._update_totals()

    def _update_totals(self):
        t = self.workflow.totals
        parts = [f"Subtotal: {_money(t.subtotal)}"]
        if t.discount_amount:
            parts.append(f"Discount: -{_money(t.discount_amount)}")
        parts += [f"Tax: {_money(t.tax_amount)}", f"VAT: {_money(t.vat_amount)}",
                  f"<b>Total: {_money(t.grand_total)}</b>"]
        if self.workflow.form.payment_status != "unpaid":
            parts.append(f"Balance due: {_money(self.workflow.balance_due)}")
        self.lab_totals.setText(" &nbsp; | &nbsp; ".join(parts))

    def _edit(self, **fields):
        if self._refreshing:
            return
        try:
            self.workflow.update(**fields)
        except ValidationError as e:
            QMessageBox.warning(self, "Validation", str(e.errors()[0]["msg"]))
        self._refresh_form()

    def _customer_edited(self):
        if self._refreshing:
            return
        try:
            self.workflow.update_customer(
                name=self.ed_cust_name.text().strip(),
                company=self.ed_cust_company.text().strip(),
                phone=self.ed_cust_phone.text().strip(),
                email=self.ed_cust_email.text().strip() or None,
                address=self.ed_cust_address.text().strip(),
                tax_number=self.ed_cust_tax.text().strip(),
            )
        except ValidationError:
            QMessageBox.warning(self, "Validation", "Invalid email")
        self._refresh_form()

    # -------- lines --------
    def _add_line(self):
        dlg = _AddLineDialog(self, self.catalog)
        if dlg.exec() == QDialog.Accepted:
            ln = dlg.get_line()
            if not ln:
                return
            items = [it for it in self.workflow.form.items if it.product_id]  # drop the empty placeholder row
            self.workflow.set_items(items + [ln])
            self._refresh_form()

    def _del_line(self):
        row = self.tbl.currentRow()
        if row < 0: return
        self.workflow.remove_item(row)
        self._refresh_form()

    def _import(self, kind: str):
        path, _ = QFileDialog.getOpenFileName(self, f"Import {kind}", "", "JSON (*.json)")
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            if kind == "quotation":
                res = self.workflow.import_quotation(payload)
            else:
                res = self.workflow.import_order(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            QMessageBox.warning(self, "Import", f"Cannot import {kind}: {e}")
            return
        self._refresh_form()
        if res.ok:
            QMessageBox.information(self, "Import", res.message())
        else:
            QMessageBox.warning(self, "Import", res.message())

    # -------- drafts --------
    def _new_draft(self):
        try:
            self.workflow.new_draft()
        except DraftCapacityExceeded as e:
            QMessageBox.warning(self, "Maximum invoices reached", str(e))
            return
        self._refresh_tabs(); self._refresh_form()

    def _switch_draft(self, index: int):
        if self._refreshing or index < 0:
            return
        self.workflow.switch_draft(self.tabs.tabData(index))
        self._refresh_form()

    def _close_draft(self, index: int):
        if self.tabs.count() <= 1:
            QMessageBox.information(self, "Cannot remove draft", "You need at least one invoice draft.")
            return
        self.workflow.remove_draft(self.tabs.tabData(index))
        self._refresh_tabs(); self._refresh_form()

    def _reset_all(self):
        if QMessageBox.question(self, "Reset", "Discard all invoice drafts?") == QMessageBox.Yes:
            self.workflow.reset_all()
            self._refresh_tabs(); self._refresh_form()

    # -------- submit --------
    def _submit(self):
        try:
            inv = self.workflow.submit()
        except InvoiceValidationError as e:
            QMessageBox.warning(self, "Error", "\n".join(e.errors))
            return
        self._refresh_tabs(); self._refresh_form()
        QMessageBox.information(self, "Success", f"Invoice #{inv.invoice_number} created successfully")
        self.invoiceCreated.emit(inv)
