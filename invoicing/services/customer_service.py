from __future__ import annotations
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from invoicing.models.customer import Customer
from invoicing.services.settings import data_dir
from invoicing.storage.json_repo import JsonRepository


class CustomerService:
    def __init__(self, path: Optional[str | Path] = None):
        self.repo = JsonRepository(path or data_dir() / "customers.json", entity_name="customer", key="id")

    def list_customers(self) -> List[Customer]:
        out: List[Customer] = []
        for d in self.repo.list_all():
            try:
                out.append(Customer(**d))
            except ValidationError:
                # invalid rows are ignored so the editor keeps working
                continue
        return out

    def add_customer(self, customer: Customer) -> Customer:
        self.repo.add(customer)
        return customer

    def get_customer(self, customer_id: int) -> Optional[Customer]:
        row = self.repo.get_by_id(customer_id)
        if not row:
            return None
        try:
            return Customer(**row)
        except ValidationError:
            return None

    def find_customer_by_name(self, name: str) -> Optional[Customer]:
        """Case-insensitive match on name or company."""
        probe = (name or "").strip().casefold()
        if not probe:
            return None
        for c in self.list_customers():
            if c.name.casefold() == probe or (c.company or "").casefold() == probe:
                return c
        return None
