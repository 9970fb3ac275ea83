from __future__ import annotations
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime
from .common import gen_id, utcnow

DiscountType = Literal["none", "percentage", "amount"]
PaymentStatus = Literal["paid", "unpaid", "partial"]
PaymentMethod = Literal["cash", "visa", "cheque", "bank_transfer"]

ZERO = Decimal("0")


class InvoiceLine(BaseModel):
    product_id: int = 0  # 0 = no product selected yet
    product_name: str = ""
    category: str = ""
    batch_no: str = ""
    gs1_code: str = ""
    type: str = ""
    unit_of_measure: str = "Pcs"
    quantity: int = Field(default=1, ge=0)
    unit_price: Decimal = Field(default=ZERO, ge=0)
    total: Decimal = ZERO  # derived: round2(quantity * unit_price)


class InvoiceCustomer(BaseModel):
    id: Optional[int] = None
    name: str = ""
    company: str = ""
    position: str = ""
    email: Optional[EmailStr] = None
    phone: str = ""
    sector: str = ""
    address: str = ""
    tax_number: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v):
        return v or None


class InvoiceForm(BaseModel):
    """Snapshot of the invoice being edited (the content of a draft)."""

    customer: InvoiceCustomer = Field(default_factory=InvoiceCustomer)
    items: List[InvoiceLine] = Field(default_factory=list)

    subtotal: Decimal = ZERO
    discount_type: DiscountType = "none"
    discount_value: Decimal = Field(default=ZERO, ge=0)
    discount_amount: Decimal = ZERO
    tax_rate: Decimal = Field(default=Decimal("14"), ge=0, le=100)
    tax_amount: Decimal = ZERO
    vat_rate: Decimal = Field(default=Decimal("14"), ge=0, le=100)
    vat_amount: Decimal = ZERO
    grand_total: Decimal = ZERO

    payment_status: PaymentStatus = "unpaid"
    payment_method: Optional[PaymentMethod] = None
    payment_terms: str = "0"
    amount_paid: Decimal = Field(default=ZERO, ge=0)

    paper_invoice_number: str = ""
    approval_number: str = ""
    notes: str = ""

    @classmethod
    def default(cls, tax_rate: Decimal | float = 14, vat_rate: Decimal | float = 14) -> "InvoiceForm":
        return cls(items=[InvoiceLine()], tax_rate=tax_rate, vat_rate=vat_rate)


class InvoiceTotals(BaseModel, frozen=True):
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    vat_amount: Decimal = ZERO
    grand_total: Decimal = ZERO


class Invoice(BaseModel):
    id: str = Field(default_factory=gen_id)
    invoice_number: Optional[str] = None

    customer: InvoiceCustomer
    items: List[InvoiceLine] = Field(default_factory=list)

    subtotal: Decimal = ZERO
    discount_type: DiscountType = "none"
    discount_value: Decimal = ZERO
    discount_amount: Decimal = ZERO
    tax_rate: Decimal = ZERO
    tax_amount: Decimal = ZERO
    vat_rate: Decimal = ZERO
    vat_amount: Decimal = ZERO
    grand_total: Decimal = ZERO

    payment_status: PaymentStatus = "unpaid"
    payment_method: Optional[PaymentMethod] = None
    payment_terms: str = "0"
    amount_paid: Decimal = ZERO

    paper_invoice_number: Optional[str] = None
    approval_number: Optional[str] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(extra="ignore")  # tolerate legacy keys in stored JSON

    @classmethod
    def from_form(cls, form: InvoiceForm) -> "Invoice":
        data = form.model_dump()
        for k in ("paper_invoice_number", "approval_number", "notes"):
            data[k] = data.get(k) or None
        return cls(**data)

    def balance_due(self) -> Decimal:
        return self.grand_total - self.amount_paid
