from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from invoicing.models.invoice import Invoice, InvoiceForm, InvoiceLine, InvoiceTotals
from invoicing.models.draft import InvoiceDraft
from invoicing.services.draft_service import DraftService
from invoicing.services.import_service import ImportResult, ImportService
from invoicing.services.invoice_service import InvoiceService
from invoicing.services.totals import balance_due, compute_totals, recalculate

log = logging.getLogger(__name__)

# edits to these fields re-arm the draft persist timer
TRACKED_FIELDS = ("items", "tax_rate", "discount_type", "discount_value")


class InvoiceWorkflow:
    """
    Editing session for the invoice creation screen.
    Every edit goes through _apply(): validate, recompute totals, notify drafts.
    """

    def __init__(self, drafts: DraftService, invoices: InvoiceService, importer: Optional[ImportService] = None):
        self.drafts = drafts
        self.invoices = invoices
        self.importer = importer or ImportService()
        self.form: InvoiceForm = drafts.active_draft.data.model_copy(deep=True)
        recalculate(self.form)

    # ---------- read side ---------- #

    @property
    def totals(self) -> InvoiceTotals:
        return compute_totals(self.form)

    @property
    def balance_due(self) -> Decimal:
        return balance_due(self.form)

    # ---------- mutation dispatch ---------- #

    def _apply(self, candidate: Dict[str, Any]) -> List[str]:
        # percentage discounts are capped where the user types them
        if candidate.get("discount_type") == "percentage":
            try:
                if Decimal(str(candidate.get("discount_value") or 0)) > 100:
                    candidate["discount_value"] = Decimal("100")
            except ArithmeticError:
                pass
        new = InvoiceForm.model_validate(candidate)
        changed = [f for f in TRACKED_FIELDS if getattr(new, f) != getattr(self.form, f)]
        self.form = new
        recalculate(self.form)
        if changed:
            self.drafts.mark_changed(self.form)
        else:
            # a pending persist must still write the latest form
            self.drafts.refresh_pending(self.form)
        return changed

    def update(self, **fields: Any) -> List[str]:
        """Set top-level fields (``tax_rate=10``, ``payment_status="paid"``...)."""
        data = self.form.model_dump()
        unknown = set(fields) - set(data)
        if unknown:
            raise KeyError(f"Unknown invoice fields: {', '.join(sorted(unknown))}")
        data.update(fields)
        return self._apply(data)

    def update_customer(self, **fields: Any) -> List[str]:
        data = self.form.model_dump()
        data["customer"].update(fields)
        return self._apply(data)

    def set_item(self, index: int, **fields: Any) -> List[str]:
        data = self.form.model_dump()
        data["items"][index].update(fields)
        return self._apply(data)

    def add_item(self, line: Optional[InvoiceLine] = None) -> List[str]:
        data = self.form.model_dump()
        data["items"].append((line or InvoiceLine()).model_dump())
        return self._apply(data)

    def remove_item(self, index: int) -> List[str]:
        data = self.form.model_dump()
        del data["items"][index]
        return self._apply(data)

    def set_items(self, items: List[InvoiceLine]) -> List[str]:
        data = self.form.model_dump()
        data["items"] = [it.model_dump() for it in items]
        return self._apply(data)

    # ---------- drafts ---------- #

    def _load(self, form: InvoiceForm) -> None:
        self.form = form
        recalculate(self.form)

    def new_draft(self) -> InvoiceDraft:
        draft = self.drafts.add_draft()
        self._load(draft.data.model_copy(deep=True))
        return draft

    def switch_draft(self, draft_id: str) -> None:
        self._load(self.drafts.switch_to(draft_id))

    def remove_draft(self, draft_id: str) -> None:
        was_active = draft_id == self.drafts.active_id
        self.drafts.remove_draft(draft_id)
        if was_active:
            self._load(self.drafts.active_draft.data.model_copy(deep=True))

    def reset_all(self) -> None:
        self._load(self.drafts.reset_all())

    # ---------- imports ---------- #

    def _take_import(self, result: ImportResult) -> ImportResult:
        self.form = result.form
        recalculate(self.form)
        self.drafts.mark_changed(self.form)
        return result

    def import_quotation(self, quotation: Any) -> ImportResult:
        return self._take_import(self.importer.import_quotation(self.form, quotation))

    def import_order(self, order: Any) -> ImportResult:
        return self._take_import(self.importer.import_order(self.form, order))

    # ---------- submission ---------- #

    def submit(self) -> Invoice:
        """Create the invoice; on success the active draft is dropped."""
        inv = self.invoices.create_invoice(self.form)
        self._load(self.drafts.complete_active())
        return inv

    def close(self) -> None:
        self.drafts.close()
