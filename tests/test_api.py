"""
HTTP API over a single in-process session.
"""
import json

import pytest
from fastapi.testclient import TestClient

from invoice_studio.assistant import Assistant
from invoice_studio.config import GUARANTEE_TEXT, STORAGE_KEY
from invoice_studio.gemini_writer import ServiceError
from invoice_studio.images import bytes_to_data_url

from conftest import png_bytes
from main import Session, app, get_session


@pytest.fixture
def session(store):
    s = Session(store)
    yield s
    s.pad.close()


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_reports_missing_key(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "gemini_key_loaded": False}


def test_health_reports_key(client, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "k")
    assert client.get("/health").json()["gemini_key_loaded"] is True


class TestDocument:
    def test_get_default_document(self, client):
        body = client.get("/document").json()
        assert body["documentType"] == "QUOTATION"
        assert body["currencySymbol"] == "$"
        assert [i["unitPrice"] for i in body["items"]] == [1500.0, 997.0]

    def test_patch_company_field_persists(self, client, cache):
        res = client.patch("/document/field", json={"section": "company", "field": "name", "value": "Acme"})
        assert res.status_code == 200
        assert res.json()["company"]["name"] == "Acme"
        assert json.loads(cache.get(STORAGE_KEY))["name"] == "Acme"

    def test_patch_unknown_field(self, client):
        res = client.patch("/document/field", json={"section": "company", "field": "phone", "value": "1"})
        assert res.status_code == 404

    def test_patch_invalid_value(self, client):
        res = client.patch("/document/field", json={"field": "documentType", "value": "RECEIPT"})
        assert res.status_code == 422

    def test_put_replaces_document(self, client):
        body = client.get("/document").json()
        body["documentType"] = "INVOICE"
        body["items"] = []
        res = client.put("/document", json=body)
        assert res.status_code == 200
        assert client.get("/document/totals").json()["formatted"]["total"] == "$0.00"
        assert client.get("/document").json()["documentType"] == "INVOICE"

    def test_totals(self, client):
        assert client.get("/document/totals").json() == {
            "subtotal": 2497.0,
            "total": 2497.0,
            "formatted": {"subtotal": "$2497.00", "total": "$2497.00"},
        }

    def test_preview(self, client):
        body = client.get("/document/preview").json()
        assert body["heading"] == "QUOTATION"
        assert body["rows"][0]["line_total"] == "$1500.00"


class TestItems:
    def test_add_update_remove(self, client):
        items = client.post("/document/items").json()["items"]
        new_id = items[-1]["id"]
        assert len(items) == 3

        res = client.patch(f"/document/items/{new_id}", json={"field": "quantity", "value": "abc"})
        assert res.json()["items"][-1]["quantity"] == 0
        res = client.patch(f"/document/items/{new_id}", json={"field": "unitPrice", "value": "49.5"})
        assert res.json()["items"][-1]["unitPrice"] == 49.5

        res = client.delete(f"/document/items/{new_id}")
        assert [i["id"] for i in res.json()["items"]] == ["1", "2"]

    def test_unknown_item(self, client):
        assert client.patch("/document/items/nope", json={"field": "quantity", "value": 1}).status_code == 404
        assert client.delete("/document/items/nope").status_code == 404

    def test_item_id_is_read_only(self, client):
        assert client.patch("/document/items/1", json={"field": "id", "value": "x"}).status_code == 422

    @pytest.mark.parametrize("value", ["1e999", "inf", "-1e999"])
    def test_out_of_range_price_keeps_session_usable(self, client, value):
        res = client.patch("/document/items/1", json={"field": "unitPrice", "value": value})
        assert res.status_code == 200
        assert res.json()["items"][0]["unitPrice"] == 0.0

        assert client.get("/document").status_code == 200
        totals = client.get("/document/totals")
        assert totals.status_code == 200
        assert totals.json()["formatted"]["total"] == "$997.00"

    def test_overflowing_total_is_reported_as_null(self, client):
        client.patch("/document/items/1", json={"field": "unitPrice", "value": "1e308"})
        client.patch("/document/items/1", json={"field": "quantity", "value": "2"})

        res = client.get("/document/totals")
        assert res.status_code == 200
        assert res.json()["subtotal"] is None
        assert res.json()["formatted"]["total"] == "$Infinity"
        assert client.get("/document/preview").status_code == 200


class TestTermsAndNotes:
    def test_polish_failure_keeps_terms(self, client, session, store):
        def failing(text):
            raise ServiceError("down")

        session.assistant = Assistant(store, polish=failing)
        res = client.post("/document/terms/polish")
        assert res.status_code == 502
        assert store.document.terms == GUARANTEE_TEXT

    def test_polish_success(self, client, session, store):
        session.assistant = Assistant(store, polish=lambda t: "Polished.")
        assert client.post("/document/terms/polish").json()["terms"] == "Polished."

    def test_reset_terms(self, client):
        client.patch("/document/field", json={"field": "terms", "value": "short"})
        assert client.post("/document/terms/reset").json()["terms"] == GUARANTEE_TEXT

    def test_generate_note_without_key_uses_fallback(self, client):
        assert client.post("/document/notes/generate").json()["notes"] == "Thank you for your business."


class TestSignature:
    def test_draw_sequence(self, client, store):
        ev = {"client_x": 110, "client_y": 220, "rect_left": 100, "rect_top": 200}
        assert client.post("/signature/press", json=ev).json()["state"] == "drawing"
        client.post("/signature/move", json={**ev, "client_x": 200, "client_y": 260})
        res = client.post("/signature/release").json()
        assert res["state"] == "idle"
        assert res["signatureUrl"].startswith("data:image/png;base64,")
        assert store.document.company.signature_url == res["signatureUrl"]
        assert client.get("/signature/surface").json()["blank"] is False

    def test_leave_ends_stroke(self, client):
        ev = {"client_x": 10, "client_y": 10}
        client.post("/signature/press", json=ev)
        client.post("/signature/move", json={"client_x": 90, "client_y": 40})
        assert client.post("/signature/leave").json()["signatureUrl"] != ""

    def test_upload_and_clear(self, client):
        raw = png_bytes()
        res = client.post("/signature/upload", files={"file": ("sig.png", raw, "image/png")})
        assert res.status_code == 200
        assert res.json()["signatureUrl"] == bytes_to_data_url(raw)

        res = client.post("/signature/clear")
        assert res.json()["signatureUrl"] == ""
        assert client.get("/signature/surface").json()["blank"] is True

    def test_upload_rejects_non_image(self, client):
        res = client.post("/signature/upload", files={"file": ("sig.png", b"text", "image/png")})
        assert res.status_code == 400


class TestLogo:
    def test_upload_and_remove(self, client, cache):
        raw = png_bytes((64, 64))
        res = client.post("/logo/upload", files={"file": ("logo.png", raw, "image/png")})
        assert res.json()["company"]["logoUrl"] == bytes_to_data_url(raw)
        assert json.loads(cache.get(STORAGE_KEY))["logoUrl"] == bytes_to_data_url(raw)

        assert client.delete("/logo").json()["company"]["logoUrl"] == ""

    def test_upload_rejects_non_image(self, client):
        res = client.post("/logo/upload", files={"file": ("logo.png", b"\x00\x01", "image/png")})
        assert res.status_code == 400
