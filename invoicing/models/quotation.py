from __future__ import annotations
from decimal import Decimal
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import List, Optional

# Import sources come from several backend endpoints (camelCase and
# snake_case payloads), hence the alias choices.
_LOOSE = ConfigDict(extra="ignore", populate_by_name=True)


class QuotationCustomer(BaseModel):
    model_config = _LOOSE

    id: Optional[int] = None
    name: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    sector: Optional[str] = None
    address: Optional[str] = None
    tax_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("taxNumber", "tax_number"))


class QuotationItem(BaseModel):
    model_config = _LOOSE

    product_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("productId", "product_id", "id"))
    product_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("productName", "product_name", "name"))
    category: Optional[str] = Field(default=None, validation_alias=AliasChoices("category", "categoryName", "specifications"))
    batch_no: Optional[str] = Field(default=None, validation_alias=AliasChoices("batchNo", "batch_no"))
    gs1_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("gs1Code", "gs1_code"))
    type: Optional[str] = None
    quantity: int = Field(default=1, ge=0, validation_alias=AliasChoices("quantity", "qty"))
    unit_price: Decimal = Field(default=Decimal("0"), ge=0, validation_alias=AliasChoices("unitPrice", "unit_price", "price"))


class Quotation(BaseModel):
    model_config = _LOOSE

    id: Optional[int] = None
    quotation_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("quotationNumber", "quotation_number"))
    type: Optional[str] = None
    customer_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("customerId", "customer_id"))
    customer_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("customerName", "customer_name"))
    customer: Optional[QuotationCustomer] = None
    items: List[QuotationItem] = Field(default_factory=list)
    discount_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("discountType", "discount_type"))
    discount_value: Optional[Decimal] = Field(default=None, validation_alias=AliasChoices("discountValue", "discount_value"))
    tax_rate: Optional[Decimal] = Field(default=None, validation_alias=AliasChoices("taxRate", "tax_rate"))

    # helpers
    def resolved_customer_id(self) -> Optional[int]:
        if self.customer_id is not None:
            return self.customer_id
        return self.customer.id if self.customer else None

    def resolved_customer_name(self) -> Optional[str]:
        if self.customer_name:
            return self.customer_name
        return self.customer.name if self.customer else None


class OrderMaterial(BaseModel):
    model_config = _LOOSE

    id: Optional[int] = None
    name: str = ""
    quantity: int = Field(default=1, ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0, validation_alias=AliasChoices("unitPrice", "unit_price"))
    unit_of_measure: str = Field(default="Pcs", validation_alias=AliasChoices("unitOfMeasure", "unit_of_measure"))


class ProductionOrder(BaseModel):
    """Production/refining order, read-only source for invoice import."""

    model_config = _LOOSE

    id: Optional[int] = None
    order_number: str = Field(default="", validation_alias=AliasChoices("orderNumber", "order_number"))
    type: str = "manufacturing"
    customer_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("customerName", "customer_name"))
    customer_company: Optional[str] = Field(default=None, validation_alias=AliasChoices("customerCompany", "customer_company"))
    batch_number: str = Field(default="", validation_alias=AliasChoices("batchNumber", "batch_number"))
    target_product: Optional[str] = Field(default=None, validation_alias=AliasChoices("targetProduct", "target_product"))
    revenue: Optional[Decimal] = None
    total_cost: Optional[Decimal] = Field(default=None, validation_alias=AliasChoices("totalCost", "total_cost"))
    materials: List[OrderMaterial] = Field(default_factory=list)

    def fallback_price(self) -> Decimal:
        return self.revenue or self.total_cost or Decimal("0")
