from __future__ import annotations
from pydantic import BaseModel, Field
from datetime import datetime
from .common import utcnow
from .invoice import InvoiceForm


class InvoiceDraft(BaseModel):
    id: str
    name: str
    data: InvoiceForm = Field(default_factory=InvoiceForm.default)
    last_updated: datetime = Field(default_factory=utcnow)

    def snapshot(self) -> str:
        return self.data.model_dump_json()
