"""Gaiji reference interception during text decoding.

The access layer fires a single registered font hook with no per-call
context, so the context that records referenced codepoints is held here as
the one process-wide active value.  ``install_context`` blocks while another
context is active; ``clear_context`` releases it.  Everything outside this
module passes the ``ExtractionContext`` explicitly.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import threading
from typing import Iterator

from zepwing.extraction.access.base import FontKind

_active_lock = threading.Lock()
_active_context: ExtractionContext | None = None


@dataclass(slots=True)
class ExtractionContext:
    """Per-subbook state accumulated while its entries are walked."""

    narrow_codepoints: set[int] = field(default_factory=set)
    wide_codepoints: set[int] = field(default_factory=set)
    seen_checksums: set[int] = field(default_factory=set)

    def record(self, font: FontKind, codepoint: int) -> None:
        if font is FontKind.NARROW:
            self.narrow_codepoints.add(codepoint)
        else:
            self.wide_codepoints.add(codepoint)

    def codepoints(self, font: FontKind) -> set[int]:
        return self.narrow_codepoints if font is FontKind.NARROW else self.wide_codepoints


def install_context(context: ExtractionContext) -> None:
    """Make context the active one, waiting for any current context to clear."""
    global _active_context

    _active_lock.acquire()
    _active_context = context


def clear_context() -> None:
    global _active_context

    if _active_context is None:
        raise RuntimeError("No extraction context is active")
    _active_context = None
    _active_lock.release()


def active_context() -> ExtractionContext | None:
    return _active_context


@contextmanager
def extraction_context(context: ExtractionContext) -> Iterator[ExtractionContext]:
    install_context(context)
    try:
        yield context
    finally:
        clear_context()


def gaiji_marker(font: FontKind, codepoint: int) -> str:
    prefix = "n" if font is FontKind.NARROW else "w"
    return f"{{{{{prefix}_{codepoint}}}}}"


class FontReferenceInterceptor:
    """Font hook that records gaiji codepoints into the active context."""

    def __init__(self, *, stub_gaiji: bool = False) -> None:
        self.stub_gaiji = stub_gaiji

    def __call__(self, font: FontKind, codepoint: int) -> str | None:
        context = _active_context
        if context is None:
            raise RuntimeError(f"Font reference {font.value}:{codepoint} decoded outside an extraction context")

        context.record(font, codepoint)
        if self.stub_gaiji:
            return gaiji_marker(font, codepoint)
        return None
