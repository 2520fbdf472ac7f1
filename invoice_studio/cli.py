# invoice_studio/cli.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .assistant import Assistant
from .config import cache_path
from .gemini_writer import ServiceError, is_configured
from .images import ImageDecodeError, bytes_to_data_url
from .preview import (
    build_preview,
    export_document_to_json,
    load_document_from_json,
    render_text,
)
from .signature import SignaturePad
from .storage import JsonFileStore
from .store import DocumentStore, UnknownFieldError


def cmd_show(store: DocumentStore, args: argparse.Namespace) -> int:
    if args.json:
        print(json.dumps(build_preview(store.document), indent=2))
    else:
        print(render_text(store.document))
    return 0


def cmd_set(store: DocumentStore, args: argparse.Namespace) -> int:
    try:
        store.update_field(args.section, args.field, args.value)
    except UnknownFieldError as e:
        print(f"Unknown field: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Invalid value for {args.section}.{args.field}: {e}", file=sys.stderr)
        return 2
    print(f"Set {args.section}.{args.field}")
    return 0


def cmd_add_item(store: DocumentStore, args: argparse.Namespace) -> int:
    doc = store.add_item()
    print(f"Added item {doc.items[-1].id}")
    return 0


def cmd_update_item(store: DocumentStore, args: argparse.Namespace) -> int:
    if store.document.find_item(args.id) is None:
        print(f"No item with id {args.id}", file=sys.stderr)
        return 1
    store.update_item(args.id, args.field, args.value)
    print(f"Updated item {args.id}")
    return 0


def cmd_remove_item(store: DocumentStore, args: argparse.Namespace) -> int:
    if store.document.find_item(args.id) is None:
        print(f"No item with id {args.id}", file=sys.stderr)
        return 1
    store.remove_item(args.id)
    print(f"Removed item {args.id}")
    return 0


def cmd_reset_terms(store: DocumentStore, args: argparse.Namespace) -> int:
    store.reset_terms()
    print("Terms reset to the default guarantee")
    return 0


def cmd_polish_terms(store: DocumentStore, args: argparse.Namespace) -> int:
    try:
        doc = Assistant(store).polish_terms()
    except ServiceError:
        print("Failed to polish text. Check API Key.", file=sys.stderr)
        return 1
    print(doc.terms)
    return 0


def cmd_generate_note(store: DocumentStore, args: argparse.Namespace) -> int:
    doc = Assistant(store).generate_note()
    print(doc.notes)
    return 0


def cmd_signature(store: DocumentStore, args: argparse.Namespace) -> int:
    pad = SignaturePad(store)
    try:
        if args.clear:
            pad.clear()
            print("Signature cleared")
        else:
            pad.upload(Path(args.upload).read_bytes())
            print(f"Signature loaded from {args.upload}")
    except ImageDecodeError as e:
        print(f"Not an image: {e}", file=sys.stderr)
        return 1
    finally:
        pad.close()
    return 0


def cmd_logo(store: DocumentStore, args: argparse.Namespace) -> int:
    if args.clear:
        store.clear_logo()
        print("Logo removed")
        return 0
    try:
        store.set_logo(bytes_to_data_url(Path(args.upload).read_bytes()))
    except ImageDecodeError as e:
        print(f"Not an image: {e}", file=sys.stderr)
        return 1
    print(f"Logo loaded from {args.upload}")
    return 0


def cmd_export(store: DocumentStore, args: argparse.Namespace) -> int:
    out = export_document_to_json(store.document, args.output)
    print(f"Exported {store.document.document_type.value.lower()} to {out}")
    return 0


def _image_source(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--upload", help="Image file to use")
    group.add_argument("--clear", action="store_true", help="Remove the current image")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="invoice-studio")
    parser.add_argument("--cache", help="Company profile cache file (default: $INVOICE_STUDIO_CACHE)")
    parser.add_argument("--draft", help="Keep the whole document in this JSON file between runs")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p_show = sub.add_parser("show", help="Print the document preview")
    p_show.add_argument("--json", action="store_true", help="Print the preview as JSON")
    p_show.set_defaults(func=cmd_show)

    p_set = sub.add_parser("set", help="Set a document, company or client field")
    p_set.add_argument("--section", choices=["root", "company", "client"], default="root")
    p_set.add_argument("--field", required=True)
    p_set.add_argument("--value", required=True)
    p_set.set_defaults(func=cmd_set)

    p_add = sub.add_parser("add-item", help="Append a new line item")
    p_add.set_defaults(func=cmd_add_item)

    p_upd = sub.add_parser("update-item", help="Change one field of a line item")
    p_upd.add_argument("--id", required=True)
    p_upd.add_argument("--field", required=True, choices=["description", "quantity", "unitPrice"])
    p_upd.add_argument("--value", required=True)
    p_upd.set_defaults(func=cmd_update_item)

    p_rm = sub.add_parser("remove-item", help="Remove a line item")
    p_rm.add_argument("--id", required=True)
    p_rm.set_defaults(func=cmd_remove_item)

    p_reset = sub.add_parser("reset-terms", help="Restore the default guarantee text")
    p_reset.set_defaults(func=cmd_reset_terms)

    p_polish = sub.add_parser("polish-terms", help="Reword the terms with Gemini")
    p_polish.set_defaults(func=cmd_polish_terms)

    p_note = sub.add_parser("generate-note", help="Write a footer note with Gemini")
    p_note.set_defaults(func=cmd_generate_note)

    p_sig = sub.add_parser("signature", help="Upload or clear the signature")
    _image_source(p_sig)
    p_sig.set_defaults(func=cmd_signature)

    p_logo = sub.add_parser("logo", help="Upload or clear the company logo")
    _image_source(p_logo)
    p_logo.set_defaults(func=cmd_logo)

    p_export = sub.add_parser("export", help="Write the document as JSON")
    p_export.add_argument("--output", required=True, help="Output JSON file")
    p_export.set_defaults(func=cmd_export)

    return parser


def run(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    store = DocumentStore(JsonFileStore(args.cache or cache_path()))

    draft = Path(args.draft) if args.draft else None
    if draft is not None and draft.exists():
        store.replace(load_document_from_json(draft))

    if args.command in ("polish-terms", "generate-note") and not is_configured():
        print("GEMINI_API_KEY is not set; AI features will not work.", file=sys.stderr)

    exit_code = args.func(store, args)

    if draft is not None and exit_code == 0:
        export_document_to_json(store.document, draft)
    return exit_code


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
