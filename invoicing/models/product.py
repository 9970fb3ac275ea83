from __future__ import annotations
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional


class Product(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    unit_of_measure: str = "Pcs"
    selling_price: Decimal = Field(default=Decimal("0"), ge=0)
    sku: Optional[str] = None
    barcode: Optional[str] = None
    active: bool = True
