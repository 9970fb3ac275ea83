# invoicing/services/invoice_service.py
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from invoicing.models.invoice import Invoice, InvoiceForm
from invoicing.services.settings import data_dir, load_settings, save_settings
from invoicing.services.totals import recalculate
from invoicing.storage.json_repo import JsonRepository

log = logging.getLogger(__name__)


class InvoiceValidationError(ValueError):
    """Submission refused; ``errors`` holds one message per problem."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def validate_for_submission(form: InvoiceForm) -> None:
    errors: List[str] = []
    if not form.customer.id and not form.customer.name.strip():
        errors.append("Please select or create a customer")
    if not form.items:
        errors.append("Please add at least one item to the invoice")
    for idx, it in enumerate(form.items, start=1):
        if not it.product_id:
            errors.append(f"Line {idx}: please select a product")
        if it.quantity <= 0:
            errors.append(f"Line {idx}: please enter a valid quantity")
    if form.discount_type == "percentage" and form.discount_value > 100:
        errors.append("Discount percentage cannot exceed 100")
    if errors:
        raise InvoiceValidationError(errors)


# ---------- Service ----------
class InvoiceService:
    """Invoices created from submitted forms (data/invoices.json)."""

    def __init__(self, base_dir: Optional[os.PathLike | str] = None):
        self.base_dir = Path(base_dir) if base_dir else data_dir()
        self.repo = JsonRepository(self.base_dir / "invoices.json", entity_name="invoice", key="id")

    def list_invoices(self) -> List[Invoice]:
        out: List[Invoice] = []
        for d in self.repo.list_all():
            try:
                out.append(Invoice(**d))
            except ValidationError:
                continue
        return sorted(out, key=lambda inv: inv.created_at, reverse=True)

    def get_by_id(self, invoice_id: str) -> Optional[Invoice]:
        d = self.repo.get_by_id(invoice_id)
        if not d:
            return None
        try:
            return Invoice(**d)
        except ValidationError:
            return None

    def create_invoice(self, form: InvoiceForm) -> Invoice:
        """Validate and persist ``form``; the form itself is left untouched."""
        data = form.model_copy(deep=True)
        recalculate(data)
        validate_for_submission(data)

        inv = Invoice.from_form(data)
        inv.invoice_number = self._next_invoice_number()
        self.repo.add(inv)
        log.info("Invoice %s created (%s, total %s)", inv.invoice_number, inv.customer.name or inv.customer.id, inv.grand_total)
        return inv

    # ----------- numbering -----------
    def _next_invoice_number(self) -> str:
        s = load_settings(self.base_dir)
        seq = s.numbering.invoice_seq
        number = f"{s.numbering.invoice_prefix}{seq:06d}"
        s.numbering.invoice_seq = seq + 1
        save_settings(s, self.base_dir)
        return number
