from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class Customer(BaseModel):
    id: int
    name: str
    company: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    sector: Optional[str] = None
    address: Optional[str] = None
    tax_number: Optional[str] = Field(default=None, description="ETA registration number")
