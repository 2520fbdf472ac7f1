# invoice_studio/models.py
from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DocumentType(str, Enum):
    INVOICE = "INVOICE"
    QUOTATION = "QUOTATION"


class _Model(BaseModel):
    # Frozen: every edit produces a new value via model_copy(update=...).
    # The cache and the HTTP API speak camelCase (ownerName, unitPrice, ...).
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class LineItem(_Model):
    id: str
    description: str = ""
    quantity: int = 1
    unit_price: float = Field(default=0.0, allow_inf_nan=False)


class ClientDetails(_Model):
    name: str = ""
    email: str = ""
    address: str = ""
    phone: str = ""


class CompanyDetails(_Model):
    """Issuing party. The only part of a document that outlives a session."""

    name: str = ""
    owner_name: str = ""
    address: str = ""
    email: str = ""
    website: str = ""
    logo_url: str = ""  # encoded image reference (data URL) or ""
    signature_url: str = ""


class InvoiceData(_Model):
    document_type: DocumentType = DocumentType.QUOTATION
    document_number: str = ""
    date: str = ""  # ISO date string
    due_date: str = ""
    currency_symbol: str = "$"

    company: CompanyDetails = Field(default_factory=CompanyDetails)
    client: ClientDetails = Field(default_factory=ClientDetails)
    items: List[LineItem] = []

    notes: str = ""
    terms: str = ""

    def find_item(self, item_id: str) -> LineItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
