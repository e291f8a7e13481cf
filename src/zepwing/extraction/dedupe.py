"""Entry checksums used to drop repeated hits across enumeration passes."""

from __future__ import annotations

import zlib

from zepwing.extraction.models import Entry


def entry_checksum(entry: Entry) -> int:
    """CRC-32 over the UTF-8 bytes of heading followed by text."""

    checksum = zlib.crc32(entry.heading.encode("utf-8"))
    return zlib.crc32(entry.text.encode("utf-8"), checksum)


def register_entry(seen: set[int], entry: Entry) -> bool:
    """Record entry in seen; False when an equal checksum was already present."""

    checksum = entry_checksum(entry)
    if checksum in seen:
        return False
    seen.add(checksum)
    return True
