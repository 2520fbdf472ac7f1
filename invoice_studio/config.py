# invoice_studio/config.py
"""Constants and environment lookups shared across the package."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

# Cache entry holding the serialized company profile
STORAGE_KEY = "tradequest_company_data"

GUARANTEE_TEXT = """PAYMENT TERMS:
Full payment is due prior to the start of services.

REFUND & GURU GUARANTEE:
"I do refund if student follow what I did and no personal issue but still not pass within 3 prop firm challenges."

ADDITIONAL CONDITIONS:
1. The student must provide proof of adherence to the specific strategy taught.
2. "No personal issue" is defined as zero violations of risk management rules or emotional trading errors.
3. The refund applies only after the failure of the 3rd challenge attempt under these strict conditions."""

NOTE_FALLBACK = "Thank you for your business."

NEW_ITEM_DESCRIPTION = "New Service"
ITEM_ID_LENGTH = 9

DUE_IN_DAYS = 7

# Signature surface
SIGNATURE_WIDTH = 300
SIGNATURE_HEIGHT = 100
SIGNATURE_STROKE_WIDTH = 2
SIGNATURE_STROKE_COLOR = (0, 0, 0, 255)

# Gemini models, tried in order
PREFERRED_MODELS = [
    "gemini-2.5-flash",
    "gemini-1.5-flash-latest",
]

DEFAULT_CACHE_PATH = Path.home() / ".invoice_studio" / "cache.json"
DEFAULT_BACKEND_URL = "http://127.0.0.1:8000"


def gemini_api_key() -> Optional[str]:
    # API_KEY is what the browser build was configured with; keep accepting it.
    return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or None


def cache_path() -> Path:
    override = os.getenv("INVOICE_STUDIO_CACHE")
    return Path(override).expanduser() if override else DEFAULT_CACHE_PATH


def backend_url() -> str:
    return os.getenv("INVOICE_STUDIO_BACKEND", DEFAULT_BACKEND_URL).rstrip("/")
