"""Flatten an extracted book into its JSON document form."""

from __future__ import annotations

import json
from pathlib import Path

from zepwing.extraction.models import Book


def book_to_payload(book: Book) -> dict[str, object]:
    return {
        "discCode": book.disc_format.value,
        "charCode": book.character_code.value,
        "subbooks": [
            {
                "title": subbook.title,
                "copyright": subbook.copyright,
                "entries": [{"heading": entry.heading, "text": entry.text} for entry in subbook.entries],
            }
            for subbook in book.subbooks
        ],
    }


def write_entries(book: Book, path: str | Path, *, pretty: bool = False) -> Path:
    """Write the book's entries as UTF-8 JSON and return the written path."""

    target = Path(path)
    indent = "\t" if pretty else None
    target.write_text(json.dumps(book_to_payload(book), ensure_ascii=False, indent=indent), encoding="utf-8")
    return target
