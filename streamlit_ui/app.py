# app.py
import os

import requests
import streamlit as st

from invoice_studio.images import data_url_to_bytes

BACKEND_URL = os.getenv("INVOICE_STUDIO_BACKEND", "http://127.0.0.1:8000").rstrip("/")

st.set_page_config(
    page_title="Invoice Studio",
    layout="wide",
    page_icon="🧾",
)

st.title("🧾 Invoices & Quotations")


def _call(method: str, path: str, **kwargs):
    try:
        res = requests.request(method, f"{BACKEND_URL}{path}", timeout=60, **kwargs)
    except requests.RequestException as e:
        st.error(f"❌ Could not reach backend: {e}")
        st.stop()
    if res.status_code != 200:
        return None, res
    return res.json(), res


def set_field(section: str, field: str, value):
    _call("PATCH", "/document/field", json={"section": section, "field": field, "value": value})


def update_item(item_id: str, field: str, value):
    _call("PATCH", f"/document/items/{item_id}", json={"field": field, "value": value})


doc, _ = _call("GET", "/document")
health, _ = _call("GET", "/health")

if not (health or {}).get("gemini_key_loaded"):
    st.warning(
        "API Key Missing: AI features for polishing legal text will not work. "
        "Please ensure GEMINI_API_KEY is set in the backend environment."
    )

form_col, preview_col = st.columns([1, 2])

# ============================================================
# EDITOR
# ============================================================
with form_col:
    st.subheader("Document")
    doc_types = ["INVOICE", "QUOTATION"]
    new_type = st.selectbox("Type", doc_types, index=doc_types.index(doc["documentType"]))
    if new_type != doc["documentType"]:
        set_field("root", "documentType", new_type)
        st.rerun()

    for label, key in [
        ("Currency", "currencySymbol"),
        ("Number", "documentNumber"),
        ("Date", "date"),
        ("Due date", "dueDate"),
    ]:
        value = st.text_input(label, doc[key], key=f"root.{key}")
        if value != doc[key]:
            set_field("root", key, value)
            st.rerun()

    st.subheader("Company Details")
    logo = st.file_uploader("Company Logo", type=["png", "jpg", "jpeg", "gif", "webp"], key="logo")
    if logo is not None and st.button("Use this logo"):
        _call("POST", "/logo/upload", files={"file": (logo.name, logo.getvalue(), logo.type)})
        st.rerun()
    if doc["company"].get("logoUrl"):
        st.caption("✓ Logo uploaded")
        if st.button("Remove logo"):
            _call("DELETE", "/logo")
            st.rerun()

    for label, key in [
        ("Company Name", "name"),
        ("Owner Name", "ownerName"),
        ("Address", "address"),
        ("Email / Contact", "email"),
        ("Website", "website"),
    ]:
        value = st.text_input(label, doc["company"][key], key=f"company.{key}")
        if value != doc["company"][key]:
            set_field("company", key, value)
            st.rerun()

    st.markdown("**Digital Signature**")
    sig = st.file_uploader("Upload signature", type=["png", "jpg", "jpeg"], key="signature")
    sig_cols = st.columns(2)
    if sig is not None and sig_cols[0].button("Use this signature"):
        _call("POST", "/signature/upload", files={"file": (sig.name, sig.getvalue(), sig.type)})
        st.rerun()
    if sig_cols[1].button("Clear signature"):
        _call("POST", "/signature/clear")
        st.rerun()
    surface, _ = _call("GET", "/signature/surface")
    if surface and not surface["blank"]:
        st.image(data_url_to_bytes(surface["dataUrl"]))

    st.subheader("Client Details")
    for label, key in [
        ("Client Name", "name"),
        ("Client Email", "email"),
        ("Client Address", "address"),
        ("Client Phone", "phone"),
    ]:
        value = st.text_input(label, doc["client"][key], key=f"client.{key}")
        if value != doc["client"][key]:
            set_field("client", key, value)
            st.rerun()

    st.subheader("Line Items")
    for item in doc["items"]:
        item_id = item["id"]
        desc = st.text_input("Description", item["description"], key=f"item.{item_id}.description")
        qty_col, price_col, rm_col = st.columns([1, 2, 1])
        qty = qty_col.text_input("Qty", str(item["quantity"]), key=f"item.{item_id}.quantity")
        price = price_col.text_input("Price", str(item["unitPrice"]), key=f"item.{item_id}.unitPrice")
        if rm_col.button("🗑", key=f"item.{item_id}.remove"):
            _call("DELETE", f"/document/items/{item_id}")
            st.rerun()
        if desc != item["description"]:
            update_item(item_id, "description", desc)
            st.rerun()
        if qty != str(item["quantity"]):
            update_item(item_id, "quantity", qty)
            st.rerun()
        if price != str(item["unitPrice"]):
            update_item(item_id, "unitPrice", price)
            st.rerun()
    if st.button("➕ Add Item"):
        _call("POST", "/document/items")
        st.rerun()

    st.subheader("Terms & Disclaimer")
    term_cols = st.columns(2)
    if term_cols[0].button("Reset Default"):
        _call("POST", "/document/terms/reset")
        st.rerun()
    if term_cols[1].button("AI Polish"):
        with st.spinner("Polishing terms..."):
            _, res = _call("POST", "/document/terms/polish")
        if res.status_code != 200:
            st.error("Failed to polish text. Check API Key.")
        else:
            st.rerun()
    terms = st.text_area("Terms", doc["terms"], height=180, key="root.terms")
    if terms != doc["terms"]:
        set_field("root", "terms", terms)
        st.rerun()

    st.subheader("Footer Note")
    if st.button("Generate"):
        with st.spinner("Writing note..."):
            _call("POST", "/document/notes/generate")
        st.rerun()
    notes = st.text_area("Note", doc["notes"], height=70, key="root.notes")
    if notes != doc["notes"]:
        set_field("root", "notes", notes)
        st.rerun()

# ============================================================
# PREVIEW
# ============================================================
with preview_col:
    preview, _ = _call("GET", "/document/preview")
    if preview["logo"]:
        st.image(data_url_to_bytes(preview["logo"]), width=120)
    st.header(preview["heading"])
    st.caption(f"#{preview['document_number']} · {preview['date']} · due {preview['due_date']}")

    from_col, to_col = st.columns(2)
    company = preview["company"]
    client = preview["client"]
    from_col.markdown(
        f"**{company['name']}**  \n{company['owner_name']}  \n{company['address']}  \n"
        f"{company['email']}  \n{company['website']}"
    )
    to_col.markdown(
        f"**{client['name']}**  \n{client['address']}  \n{client['email']}  \n{client['phone']}"
    )

    st.table(
        [
            {
                "Description": row["description"],
                "Qty": row["quantity"],
                "Price": row["unit_price"],
                "Total": row["line_total"],
            }
            for row in preview["rows"]
        ]
    )
    st.markdown(f"Subtotal: **{preview['subtotal']}**")
    st.markdown(f"### Total: {preview['total']}")

    st.markdown("#### Terms & Guarantee")
    st.text(preview["terms"])

    if preview["signature"]:
        st.image(data_url_to_bytes(preview["signature"]), width=200)
    st.caption(f"{company['owner_name']}, {company['name']}")

    if preview.get("notes"):
        st.info(preview["notes"])
