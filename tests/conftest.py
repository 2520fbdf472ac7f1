"""
Pytest configuration and shared fixtures.
"""
import io
from datetime import date
from unittest.mock import MagicMock

import pytest
from PIL import Image

from invoice_studio.defaults import build_default_document
from invoice_studio.storage import InMemoryStore
from invoice_studio.store import DocumentStore

TODAY = date(2026, 1, 15)


def fixed_defaults():
    return build_default_document(TODAY)


def png_bytes(size=(200, 100), color=(255, 0, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def no_gemini_key(monkeypatch):
    """Tests never see a real credential unless they set one."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)


@pytest.fixture
def cache():
    """In-memory cache wrapped in a MagicMock so writes can be counted."""
    return MagicMock(wraps=InMemoryStore())


@pytest.fixture
def store(cache):
    return DocumentStore(cache, default_factory=fixed_defaults)
