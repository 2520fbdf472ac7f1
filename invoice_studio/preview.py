# invoice_studio/preview.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from .models import InvoiceData
from .totals import format_money, line_total, subtotal, total


def build_preview(doc: InvoiceData) -> Dict[str, Any]:
    """
    Everything the printable page shows, already formatted. Pure function
    of the document; the print step captures whatever this returns.
    """
    symbol = doc.currency_symbol
    rows: List[Dict[str, Any]] = [
        {
            "id": item.id,
            "description": item.description,
            "quantity": item.quantity,
            "unit_price": format_money(item.unit_price, symbol),
            "line_total": format_money(line_total(item), symbol),
        }
        for item in doc.items
    ]

    preview: Dict[str, Any] = {
        "heading": doc.document_type.value,
        "document_number": doc.document_number,
        "date": doc.date,
        "due_date": doc.due_date,
        "company": {
            "name": doc.company.name,
            "owner_name": doc.company.owner_name,
            "address": doc.company.address,
            "email": doc.company.email,
            "website": doc.company.website,
        },
        "client": {
            "name": doc.client.name,
            "address": doc.client.address,
            "email": doc.client.email,
            "phone": doc.client.phone,
        },
        "rows": rows,
        "subtotal": format_money(subtotal(doc.items), symbol),
        "total": format_money(total(doc.items), symbol),
        "terms": doc.terms,
        # None means the default logo / a blank signature line
        "logo": doc.company.logo_url or None,
        "signature": doc.company.signature_url or None,
    }
    if doc.notes:
        preview["notes"] = doc.notes
    return preview


def render_text(doc: InvoiceData) -> str:
    """Plain-text rendering for terminals."""
    p = build_preview(doc)
    lines = [
        f"{p['heading']}  #{p['document_number']}",
        f"Date: {p['date']}    Due: {p['due_date']}",
        "",
        f"From: {p['company']['name']} ({p['company']['owner_name']})",
        f"      {p['company']['address']}",
        f"      {p['company']['email']}",
        f"To:   {p['client']['name']}",
        f"      {p['client']['address']}",
        f"      {p['client']['email']}  {p['client']['phone']}",
        "",
    ]
    for row in p["rows"]:
        lines.append(
            f"  {row['description'][:40]:<40} {row['quantity']:>5} x {row['unit_price']:>12} = {row['line_total']:>12}"
        )
    lines += [
        "",
        f"Subtotal: {p['subtotal']}",
        f"Total:    {p['total']}",
        "",
        "Terms & Guarantee:",
        p["terms"],
        "",
        f"Signature: {'on file' if p['signature'] else '(none)'}",
    ]
    if "notes" in p:
        lines += ["", p["notes"]]
    return "\n".join(lines)


def export_document_to_json(doc: InvoiceData, output_path: str | Path) -> Path:
    """Write the document as camelCase JSON, creating parent directories."""
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(doc.to_json_dict(), indent=2, default=str), encoding="utf-8")
    return out


def load_document_from_json(path: str | Path) -> InvoiceData:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return InvoiceData.model_validate(data)
