# invoice_studio/defaults.py
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from .config import DUE_IN_DAYS, GUARANTEE_TEXT
from .models import ClientDetails, CompanyDetails, DocumentType, InvoiceData, LineItem


def default_company() -> CompanyDetails:
    return CompanyDetails(
        name="TradeQuest",
        owner_name="Head Mentor",
        address="Global Financial District",
        email="support@tradequest.com",
        website="",
        signature_url="",
    )


def default_client() -> ClientDetails:
    return ClientDetails(
        name="Aspiring Trader",
        email="student@example.com",
        address="123 Market Lane",
        phone="+1 555-0123",
    )


def build_default_document(today: Optional[date] = None) -> InvoiceData:
    """
    The document every session starts from. Dates are computed from
    ``today`` (UTC when omitted), so two calls on the same day are equal.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()

    return InvoiceData(
        document_type=DocumentType.QUOTATION,
        document_number=f"TQ-{today.year}-001",
        date=today.isoformat(),
        due_date=(today + timedelta(days=DUE_IN_DAYS)).isoformat(),
        currency_symbol="$",
        company=default_company(),
        client=default_client(),
        items=[
            LineItem(
                id="1",
                description="VIP Forex Mentorship (Lifetime Access)",
                quantity=1,
                unit_price=1500,
            ),
            LineItem(
                id="2",
                description="Prop Firm Funding Service",
                quantity=1,
                unit_price=997,
            ),
        ],
        notes="Welcome to TradeQuest. Success is the only option.",
        terms=GUARANTEE_TEXT,
    )
