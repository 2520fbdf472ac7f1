# invoice_studio/store.py
from __future__ import annotations

import json
import logging
import random
import string
import threading
from functools import lru_cache
from typing import Any, Callable, List, Optional, Set, Type

from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import GUARANTEE_TEXT, ITEM_ID_LENGTH, NEW_ITEM_DESCRIPTION, STORAGE_KEY
from .defaults import build_default_document
from .models import ClientDetails, CompanyDetails, InvoiceData, LineItem
from .storage import KeyValueStore, PersistenceError
from .totals import coerce_price, coerce_quantity

logger = logging.getLogger(__name__)

Listener = Callable[[InvoiceData, InvoiceData], None]

ROOT = "root"
SECTIONS = {
    ROOT: InvoiceData,
    "company": CompanyDetails,
    "client": ClientDetails,
}

ID_ALPHABET = string.digits + string.ascii_lowercase


class UnknownFieldError(KeyError):
    """The section/field pair does not name a document field."""


def resolve_field(model_cls: Type[BaseModel], name: str) -> str:
    """Accept either the python name (owner_name) or the wire alias (ownerName)."""
    if name in model_cls.model_fields:
        return name
    for field_name, info in model_cls.model_fields.items():
        if info.alias == name:
            return field_name
    raise UnknownFieldError(f"{model_cls.__name__} has no field {name!r}")


@lru_cache(maxsize=None)
def _field_adapter(model_cls: Type[BaseModel], field_name: str) -> TypeAdapter:
    return TypeAdapter(model_cls.model_fields[field_name].annotation)


def _coerce(model_cls: Type[BaseModel], field_name: str, value: Any) -> Any:
    return _field_adapter(model_cls, field_name).validate_python(value)


class DocumentStore:
    """
    Owns the current document for one editing session.

    Every edit swaps in a new ``InvoiceData`` value; branches that an edit
    does not touch are the same objects as before. The company profile is
    written to ``cache`` whenever it differs from the previous value, and
    only then.
    """

    def __init__(
        self,
        cache: KeyValueStore,
        key: str = STORAGE_KEY,
        default_factory: Callable[[], InvoiceData] = build_default_document,
    ):
        self.cache = cache
        self.key = key
        self._default_factory = default_factory
        self._listeners: List[Listener] = []
        self._issued_ids: Set[str] = set()
        # Edits read the current document and swap in a new one; FastAPI may
        # call in from several worker threads.
        self._lock = threading.RLock()
        self._document = self.initialize()

    # ------------------------------------------------------------------
    # Session start
    # ------------------------------------------------------------------
    def initialize(self) -> InvoiceData:
        """
        Build the session's starting document: defaults, with the cached
        company profile merged in when one can be read. Never raises.
        """
        document = self._default_factory()
        company = self._load_company()
        if company is not None:
            document = document.model_copy(update={"company": company})

        self._document = document
        self._issued_ids.update(item.id for item in document.items)
        return document

    def _load_company(self) -> Optional[CompanyDetails]:
        try:
            raw = self.cache.get(self.key)
        except PersistenceError as e:
            logger.error("Failed to load saved data: %s", e)
            return None

        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Failed to load saved data under %r: %s", self.key, e)
            return None

        if not isinstance(data, dict):
            logger.error("Failed to load saved data under %r: not an object", self.key)
            return None
        return self._company_from_payload(data)

    def _company_from_payload(self, data: dict) -> CompanyDetails:
        """
        Take every stored field that fits its type; a field that does not
        is dropped (and logged) instead of discarding the whole profile.
        """
        fields = {}
        for field_name, info in CompanyDetails.model_fields.items():
            key = info.alias if info.alias in data else field_name
            if key not in data:
                continue
            try:
                fields[field_name] = _coerce(CompanyDetails, field_name, data[key])
            except ValidationError as e:
                logger.warning(
                    "Ignoring saved company field %r under %r: %s", key, self.key, e.errors()[0]["msg"]
                )
        return CompanyDetails(**fields)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @property
    def document(self) -> InvoiceData:
        return self._document

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(old, new)`` after every replacement."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def replace(self, new_document: InvoiceData) -> InvoiceData:
        with self._lock:
            previous = self._document
            self._document = new_document
            self._issued_ids.update(item.id for item in new_document.items)

            if new_document.company != previous.company:
                self._persist_company(new_document.company)

            for listener in list(self._listeners):
                listener(previous, new_document)
            return new_document

    def _persist_company(self, company: CompanyDetails) -> None:
        payload = json.dumps(company.to_json_dict()).encode("utf-8")
        try:
            self.cache.set(self.key, payload)
        except PersistenceError as e:
            logger.error("Failed to save company data: %s", e)

    def update_field(self, section: str, field: str, value: Any) -> InvoiceData:
        """
        Replace one field of the document (``section="root"``) or of its
        company/client block. Values go through the field's type, so
        ``update_field("root", "documentType", "INVOICE")`` works.
        """
        model_cls = SECTIONS.get(section)
        if model_cls is None:
            raise UnknownFieldError(f"unknown section {section!r}")

        field_name = resolve_field(model_cls, field)
        value = _coerce(model_cls, field_name, value)

        with self._lock:
            doc = self._document
            if section == ROOT:
                updated = doc.model_copy(update={field_name: value})
            else:
                branch = getattr(doc, section)
                updated = doc.model_copy(
                    update={section: branch.model_copy(update={field_name: value})}
                )
            return self.replace(updated)

    def update_root(self, field: str, value: Any) -> InvoiceData:
        return self.update_field(ROOT, field, value)

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------
    def _new_item_id(self) -> str:
        taken = self._issued_ids | {item.id for item in self._document.items}
        while True:
            candidate = "".join(random.choices(ID_ALPHABET, k=ITEM_ID_LENGTH))
            if candidate not in taken:
                self._issued_ids.add(candidate)
                return candidate

    def _index_of(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self._document.items):
            if item.id == item_id:
                return index
        return None

    def add_item(self) -> InvoiceData:
        with self._lock:
            item = LineItem(
                id=self._new_item_id(),
                description=NEW_ITEM_DESCRIPTION,
                quantity=1,
                unit_price=0,
            )
            doc = self._document
            return self.replace(doc.model_copy(update={"items": [*doc.items, item]}))

    def update_item(self, item_id: str, field: str, value: Any) -> InvoiceData:
        field_name = resolve_field(LineItem, field)
        if field_name == "id":
            raise ValueError("line item ids cannot be changed")

        if field_name == "quantity":
            value = coerce_quantity(value)
        elif field_name == "unit_price":
            value = coerce_price(value)
        else:
            value = "" if value is None else str(value)

        with self._lock:
            doc = self._document
            index = self._index_of(item_id)
            if index is None:
                return doc

            items = list(doc.items)
            items[index] = items[index].model_copy(update={field_name: value})
            return self.replace(doc.model_copy(update={"items": items}))

    def remove_item(self, item_id: str) -> InvoiceData:
        with self._lock:
            doc = self._document
            index = self._index_of(item_id)
            if index is None:
                return doc

            items = list(doc.items)
            del items[index]
            return self.replace(doc.model_copy(update={"items": items}))

    # ------------------------------------------------------------------
    # Convenience edits
    # ------------------------------------------------------------------
    def reset_terms(self) -> InvoiceData:
        return self.update_root("terms", GUARANTEE_TEXT)

    def set_logo(self, data_url: str) -> InvoiceData:
        return self.update_field("company", "logo_url", data_url)

    def clear_logo(self) -> InvoiceData:
        return self.update_field("company", "logo_url", "")
