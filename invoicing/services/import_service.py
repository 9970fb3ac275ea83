from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from invoicing.models.invoice import InvoiceCustomer, InvoiceForm, InvoiceLine
from invoicing.models.quotation import ProductionOrder, Quotation, QuotationItem
from invoicing.services.catalog_service import CatalogService
from invoicing.services.customer_service import CustomerService
from invoicing.services.totals import line_total, recalculate

log = logging.getLogger(__name__)


@dataclass
class ImportResult:
    form: InvoiceForm
    source: str
    imported: int = 0
    unresolved: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unresolved

    def message(self) -> str:
        msg = f"Items from {self.source} have been imported"
        if self.unresolved:
            msg += f". Warning: {len(self.unresolved)} items could not be mapped: {', '.join(self.unresolved)}"
        return msg


class ImportService:
    """Turns quotations and production orders into invoice form content."""

    def __init__(self, catalog: Optional[CatalogService] = None, customers: Optional[CustomerService] = None) -> None:
        self.catalog = catalog or CatalogService()
        self.customers = customers or CustomerService()

    # ----- customer ----- #

    def _resolve_customer(self, q: Quotation) -> Optional[InvoiceCustomer]:
        cid = q.resolved_customer_id()
        cname = q.resolved_customer_name()
        if not cid and not cname:
            return None

        found = self.customers.get_customer(cid) if cid else None
        if found is None and cname:
            found = self.customers.find_customer_by_name(cname)

        emb = q.customer
        def pick(attr: str) -> str:
            if found is not None and getattr(found, attr, None):
                return str(getattr(found, attr))
            return (getattr(emb, attr, None) if emb else None) or ""

        return InvoiceCustomer(
            id=(found.id if found else cid) or None,
            name=(found.name if found else cname) or "",
            company=pick("company") or (cname or ""),
            position=pick("position"),
            email=pick("email") or None,
            phone=pick("phone"),
            sector=pick("sector"),
            address=pick("address"),
            tax_number=pick("tax_number"),
        )

    # ----- lines ----- #

    def _resolve_product_id(self, item: QuotationItem) -> Optional[int]:
        if item.product_id:
            return item.product_id
        if item.product_name:
            p = self.catalog.find_product(item.product_name)
            if p:
                return p.id
        return None

    def _map_item(self, item: QuotationItem, product_id: int, default_type: str) -> InvoiceLine:
        return InvoiceLine(
            product_id=product_id,
            product_name=item.product_name or "",
            category=item.category or "",
            batch_no=item.batch_no or "",
            gs1_code=item.gs1_code or "",
            type=item.type or default_type,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=line_total(item.quantity, item.unit_price),
        )

    # ----- imports ----- #

    def import_quotation(self, form: InvoiceForm, quotation: Union[Quotation, Dict[str, Any]]) -> ImportResult:
        q = quotation if isinstance(quotation, Quotation) else Quotation.model_validate(quotation)
        new = form.model_copy(deep=True)
        result = ImportResult(form=new, source=f"quotation {q.quotation_number or q.id or ''}".strip())

        customer = self._resolve_customer(q)
        if customer is not None:
            new.customer = customer

        if q.items:
            mapped: List[InvoiceLine] = []
            for item in q.items:
                pid = self._resolve_product_id(item)
                if not pid:
                    result.unresolved.append(item.product_name or "Unknown Item")
                    continue
                mapped.append(self._map_item(item, pid, q.type or ""))
            new.items = mapped
            result.imported = len(mapped)

        if q.discount_type in ("percentage", "amount") and q.discount_value:
            new.discount_type = q.discount_type
            new.discount_value = q.discount_value
        if q.tax_rate:
            new.tax_rate = q.tax_rate

        result.form = InvoiceForm.model_validate(new.model_dump())
        recalculate(result.form)
        if result.unresolved:
            log.warning("Quotation import: %d unresolved items (%s)", len(result.unresolved), ", ".join(result.unresolved))
        return result

    def import_order(self, form: InvoiceForm, order: Union[ProductionOrder, Dict[str, Any]]) -> ImportResult:
        o = order if isinstance(order, ProductionOrder) else ProductionOrder.model_validate(order)
        new = form.model_copy(deep=True)

        if o.customer_name:
            new.customer = InvoiceCustomer(name=o.customer_name, company=o.customer_company or o.customer_name)

        lines: List[InvoiceLine] = []
        for idx, m in enumerate(o.materials):
            # the first material carries the order price when it has none of its own
            price = m.unit_price if (m.unit_price or idx > 0) else o.fallback_price()
            lines.append(InvoiceLine(
                product_id=m.id or 0,
                product_name=m.name,
                category="Pharmaceutical",
                batch_no=o.batch_number,
                type=o.type,
                unit_of_measure=m.unit_of_measure,
                quantity=m.quantity,
                unit_price=price,
            ))
        if not lines:
            lines.append(InvoiceLine(
                product_id=0,
                product_name=o.target_product or f"Order {o.order_number}",
                category="Pharmaceutical",
                batch_no=o.batch_number,
                type=o.type,
                quantity=1,
                unit_price=o.fallback_price(),
            ))
        new.items = lines

        result = ImportResult(form=InvoiceForm.model_validate(new.model_dump()), source=f"order {o.order_number}", imported=len(lines))
        recalculate(result.form)
        return result
