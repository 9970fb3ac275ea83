from __future__ import annotations
import logging
import sys

from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QTabWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QFileDialog, QTableWidget, QTableWidgetItem, QHeaderView
)

from invoicing.models.invoice import InvoiceForm
from invoicing.services.catalog_service import CatalogService
from invoicing.services.customer_service import CustomerService
from invoicing.services.draft_service import DraftService
from invoicing.services.import_service import ImportService
from invoicing.services.invoice_service import InvoiceService
from invoicing.services.settings import data_dir, load_settings
from invoicing.services.workflow_service import InvoiceWorkflow
from invoicing.storage.kv_store import JsonFileStore
from invoicing_ui.qt_scheduler import QtScheduler
from invoicing_ui.widgets.invoice_editor import InvoiceEditor


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Pharma ERP - Invoices")
        self.resize(1280, 800)

        settings = load_settings()
        fin = settings.financial
        self.catalog_service = CatalogService()
        self.invoice_service = InvoiceService()
        self.drafts = DraftService(
            JsonFileStore(data_dir() / "drafts.json"),
            QtScheduler(self),
            default_factory=lambda: InvoiceForm.default(fin.tax_rate, fin.vat_rate),
            max_drafts=settings.drafts.max_drafts,
            debounce_seconds=settings.drafts.debounce_seconds,
        )
        self.workflow = InvoiceWorkflow(
            self.drafts, self.invoice_service,
            ImportService(self.catalog_service, CustomerService()),
        )

        self.tabs = QTabWidget()
        self.setCentralWidget(self.tabs)

        self.editor = InvoiceEditor(self.workflow, self.catalog_service)
        self.editor.invoiceCreated.connect(lambda _inv: self._refresh_history())
        self.tabs.addTab(self.editor, "New invoice")
        self.tabs.addTab(self._history_tab(), "Invoices")
        self.tabs.addTab(self._settings_tab(), "Settings")

    # ==================== HISTORY ====================
    def _history_tab(self):
        w = QWidget()
        root = QVBoxLayout(w)
        bar = QHBoxLayout()
        btn_refresh = QPushButton("Refresh")
        bar.addStretch(1); bar.addWidget(btn_refresh)
        root.addLayout(bar)

        self.tbl_invoices = QTableWidget(0, 6)
        self.tbl_invoices.setHorizontalHeaderLabels(["Number", "Date", "Customer", "Total", "Paid", "Status"])
        self.tbl_invoices.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.tbl_invoices.setSelectionBehavior(self.tbl_invoices.SelectionBehavior.SelectRows)
        self.tbl_invoices.setEditTriggers(self.tbl_invoices.EditTrigger.NoEditTriggers)
        root.addWidget(self.tbl_invoices, 1)

        btn_refresh.clicked.connect(self._refresh_history)
        self._refresh_history()
        return w

    def _refresh_history(self):
        self.tbl_invoices.setRowCount(0)
        for inv in self.invoice_service.list_invoices():
            r = self.tbl_invoices.rowCount(); self.tbl_invoices.insertRow(r)
            self.tbl_invoices.setItem(r, 0, QTableWidgetItem(inv.invoice_number or ""))
            self.tbl_invoices.setItem(r, 1, QTableWidgetItem(inv.created_at.strftime("%Y-%m-%d %H:%M")))
            self.tbl_invoices.setItem(r, 2, QTableWidgetItem(inv.customer.name or inv.customer.company))
            self.tbl_invoices.setItem(r, 3, QTableWidgetItem(f"{inv.grand_total:,.2f}"))
            self.tbl_invoices.setItem(r, 4, QTableWidgetItem(f"{inv.amount_paid:,.2f}"))
            self.tbl_invoices.setItem(r, 5, QTableWidgetItem(inv.payment_status))
        self.tbl_invoices.resizeRowsToContents()

    # ==================== SETTINGS ====================
    def _settings_tab(self):
        w = QWidget(); lay = QVBoxLayout(w)
        base = data_dir()
        lay.addWidget(QLabel(f"Settings: {base / 'settings.json'}"))
        lay.addWidget(QLabel(f"Drafts: {base / 'drafts.json'}"))
        btn_open = QPushButton("Open data folder…")
        btn_open.clicked.connect(lambda: QFileDialog.getOpenFileName(self, "Open a file", str(base)))
        lay.addWidget(btn_open)
        lay.addStretch(1)
        return w

    def closeEvent(self, event):
        self.drafts.flush()
        self.workflow.close()
        super().closeEvent(event)


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    win = MainWindow()
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
