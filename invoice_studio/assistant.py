# invoice_studio/assistant.py
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator

from . import gemini_writer
from .models import InvoiceData
from .store import DocumentStore

logger = logging.getLogger(__name__)


class BusyError(RuntimeError):
    """A request for the same field is still outstanding."""


class Assistant:
    """
    Runs the AI-backed edits against a DocumentStore.

    Terms polishing is strict: on failure the terms stay as they were and
    the ServiceError reaches the caller. Note generation never fails, the
    writer substitutes a stock sentence. At most one request per field is
    in flight at a time.
    """

    def __init__(
        self,
        store: DocumentStore,
        polish: Callable[[str], str] = gemini_writer.polish_legal_text,
        generate_note: Callable[[str, str], str] = gemini_writer.generate_thank_you_note,
    ):
        self.store = store
        self._polish = polish
        self._generate_note = generate_note
        self._locks: Dict[str, threading.Lock] = {
            "terms": threading.Lock(),
            "notes": threading.Lock(),
        }

    def is_busy(self, field: str) -> bool:
        return self._locks[field].locked()

    @contextmanager
    def _guard(self, field: str) -> Iterator[None]:
        lock = self._locks[field]
        if not lock.acquire(blocking=False):
            raise BusyError(f"a request for {field} is already running")
        try:
            yield
        finally:
            lock.release()

    def polish_terms(self) -> InvoiceData:
        with self._guard("terms"):
            original = self.store.document.terms
            try:
                polished = self._polish(original)
            except gemini_writer.ServiceError:
                logger.warning("Failed to polish text, terms left unchanged")
                raise
            # Only the terms field changes; edits made meanwhile are kept.
            return self.store.update_root("terms", polished)

    def generate_note(self) -> InvoiceData:
        with self._guard("notes"):
            doc = self.store.document
            note = self._generate_note(doc.client.name, doc.company.name)
            return self.store.update_root("notes", note)
