# main.py
from __future__ import annotations

import logging
import math
from typing import Any, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from pydantic import BaseModel

from invoice_studio.assistant import Assistant, BusyError
from invoice_studio.config import cache_path
from invoice_studio.gemini_writer import ServiceError, is_configured
from invoice_studio.images import ImageDecodeError, bytes_to_data_url
from invoice_studio.models import InvoiceData
from invoice_studio.preview import build_preview
from invoice_studio.signature import SignaturePad
from invoice_studio.storage import JsonFileStore
from invoice_studio.store import DocumentStore, UnknownFieldError
from invoice_studio.totals import format_money, subtotal, total

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Invoice Studio (single-user session)")


class Session:
    """One editing session: the document, its signature pad and the AI helper."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.pad = SignaturePad(store)
        self.assistant = Assistant(store)


_session: Optional[Session] = None


def get_session() -> Session:
    global _session
    if _session is None:
        logger.info("Starting session, company cache at %s", cache_path())
        _session = Session(DocumentStore(JsonFileStore(cache_path())))
    return _session


def _doc(doc: InvoiceData) -> dict:
    return doc.to_json_dict()


# ---------------------------------------------------------
# HEALTH
# ---------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok", "gemini_key_loaded": is_configured()}


# ---------------------------------------------------------
# DOCUMENT
# ---------------------------------------------------------
class FieldUpdate(BaseModel):
    section: str = "root"
    field: str
    value: Any = None


class ItemUpdate(BaseModel):
    field: str
    value: Any = None


@app.get("/document")
def get_document(session: Session = Depends(get_session)):
    return _doc(session.store.document)


@app.put("/document")
def replace_document(document: InvoiceData, session: Session = Depends(get_session)):
    return _doc(session.store.replace(document))


@app.patch("/document/field")
def update_field(req: FieldUpdate, session: Session = Depends(get_session)):
    try:
        doc = session.store.update_field(req.section, req.field, req.value)
    except UnknownFieldError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _doc(doc)


@app.post("/document/items")
def add_item(session: Session = Depends(get_session)):
    return _doc(session.store.add_item())


@app.patch("/document/items/{item_id}")
def update_item(item_id: str, req: ItemUpdate, session: Session = Depends(get_session)):
    if session.store.document.find_item(item_id) is None:
        raise HTTPException(status_code=404, detail=f"no item {item_id}")
    try:
        doc = session.store.update_item(item_id, req.field, req.value)
    except UnknownFieldError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _doc(doc)


@app.delete("/document/items/{item_id}")
def remove_item(item_id: str, session: Session = Depends(get_session)):
    if session.store.document.find_item(item_id) is None:
        raise HTTPException(status_code=404, detail=f"no item {item_id}")
    return _doc(session.store.remove_item(item_id))


def _json_number(value: float) -> Optional[float]:
    # JSON has no Infinity; an overflowing sum is reported as null
    return value if math.isfinite(value) else None


@app.get("/document/totals")
def get_totals(session: Session = Depends(get_session)):
    doc = session.store.document
    sub, tot = subtotal(doc.items), total(doc.items)
    return {
        "subtotal": _json_number(sub),
        "total": _json_number(tot),
        "formatted": {
            "subtotal": format_money(sub, doc.currency_symbol),
            "total": format_money(tot, doc.currency_symbol),
        },
    }


@app.get("/document/preview")
def get_preview(session: Session = Depends(get_session)):
    return build_preview(session.store.document)


# ---------------------------------------------------------
# TERMS / NOTES (Gemini)
# ---------------------------------------------------------
@app.post("/document/terms/reset")
def reset_terms(session: Session = Depends(get_session)):
    return _doc(session.store.reset_terms())


@app.post("/document/terms/polish")
def polish_terms(session: Session = Depends(get_session)):
    try:
        doc = session.assistant.polish_terms()
    except BusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ServiceError:
        raise HTTPException(status_code=502, detail="Failed to polish text. Check API Key.")
    return _doc(doc)


@app.post("/document/notes/generate")
def generate_note(session: Session = Depends(get_session)):
    try:
        doc = session.assistant.generate_note()
    except BusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _doc(doc)


# ---------------------------------------------------------
# SIGNATURE PAD
# ---------------------------------------------------------
class PointerEvent(BaseModel):
    client_x: float
    client_y: float
    # Surface top-left on screen when the event fired
    rect_left: float = 0.0
    rect_top: float = 0.0


def _pad_state(session: Session) -> dict:
    return {
        "state": session.pad.state.value,
        "signatureUrl": session.store.document.company.signature_url,
    }


@app.post("/signature/press")
def signature_press(ev: PointerEvent, session: Session = Depends(get_session)):
    session.pad.press(ev.client_x, ev.client_y, offset=(ev.rect_left, ev.rect_top))
    return _pad_state(session)


@app.post("/signature/move")
def signature_move(ev: PointerEvent, session: Session = Depends(get_session)):
    session.pad.move(ev.client_x, ev.client_y, offset=(ev.rect_left, ev.rect_top))
    return _pad_state(session)


@app.post("/signature/release")
def signature_release(session: Session = Depends(get_session)):
    session.pad.release()
    return _pad_state(session)


@app.post("/signature/leave")
def signature_leave(session: Session = Depends(get_session)):
    session.pad.leave()
    return _pad_state(session)


@app.post("/signature/upload")
async def signature_upload(file: UploadFile = File(...), session: Session = Depends(get_session)):
    raw = await file.read()
    try:
        session.pad.upload(raw)
    except ImageDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _pad_state(session)


@app.post("/signature/clear")
def signature_clear(session: Session = Depends(get_session)):
    session.pad.clear()
    return _pad_state(session)


@app.get("/signature/surface")
def signature_surface(session: Session = Depends(get_session)):
    return {"dataUrl": session.pad.to_data_url(), "blank": session.pad.is_blank()}


# ---------------------------------------------------------
# LOGO
# ---------------------------------------------------------
@app.post("/logo/upload")
async def logo_upload(file: UploadFile = File(...), session: Session = Depends(get_session)):
    raw = await file.read()
    try:
        url = bytes_to_data_url(raw)
    except ImageDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _doc(session.store.set_logo(url))


@app.delete("/logo")
def logo_clear(session: Session = Depends(get_session)):
    return _doc(session.store.clear_logo())
