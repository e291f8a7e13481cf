from __future__ import annotations

from pathlib import Path
import threading

import pytest

from zepwing.extraction.access.base import BlockKind, FontKind, Position
from zepwing.extraction.access.memory import FontRef, MemoryAccessLayer, MemoryDisc, MemoryEntry, MemorySubbook
from zepwing.extraction.hooks import (
    ExtractionContext,
    FontReferenceInterceptor,
    active_context,
    clear_context,
    extraction_context,
    gaiji_marker,
    install_context,
)
from zepwing.extraction.reader import AdaptiveTextReader


def _reader_with_hook(*, stub_gaiji: bool) -> AdaptiveTextReader:
    entry = MemoryEntry(heading=["見出し"], text=["see ", FontRef(FontKind.WIDE, 42), " here"])
    access = MemoryAccessLayer({"disc": MemoryDisc(subbooks=[MemorySubbook(title="Hooks", entries=[entry])])})
    access.initialize()
    access.set_font_hook(FontReferenceInterceptor(stub_gaiji=stub_gaiji))
    access.bind(Path("disc"))
    access.set_subbook(0)
    return AdaptiveTextReader(access)


def test_stub_mode_injects_marker_and_records_codepoint() -> None:
    reader = _reader_with_hook(stub_gaiji=True)

    with extraction_context(ExtractionContext()) as context:
        text = reader.read(Position(0, 1), BlockKind.TEXT)

    assert "{{w_42}}" in text
    assert text == "see {{w_42}} here"
    assert context.wide_codepoints == {42}
    assert context.narrow_codepoints == set()


def test_disabled_stub_mode_drops_marker_but_still_records() -> None:
    reader = _reader_with_hook(stub_gaiji=False)

    with extraction_context(ExtractionContext()) as context:
        text = reader.read(Position(0, 1), BlockKind.TEXT)

    assert "{{w_42}}" not in text
    assert text == "see  here"
    assert context.wide_codepoints == {42}


def test_gaiji_marker_format_per_font() -> None:
    assert gaiji_marker(FontKind.NARROW, 7) == "{{n_7}}"
    assert gaiji_marker(FontKind.WIDE, 41250) == "{{w_41250}}"


def test_interceptor_requires_active_context() -> None:
    interceptor = FontReferenceInterceptor(stub_gaiji=True)

    assert active_context() is None
    with pytest.raises(RuntimeError, match="outside an extraction context"):
        interceptor(FontKind.NARROW, 3)


def test_clear_without_active_context_fails() -> None:
    with pytest.raises(RuntimeError, match="No extraction context"):
        clear_context()


def test_extraction_context_clears_on_error() -> None:
    with pytest.raises(KeyError):
        with extraction_context(ExtractionContext()):
            raise KeyError("boom")

    assert active_context() is None


def test_second_install_blocks_until_first_is_cleared() -> None:
    first = ExtractionContext()
    second = ExtractionContext()
    installed = threading.Event()

    def _install_second() -> None:
        install_context(second)
        installed.set()

    install_context(first)
    worker = threading.Thread(target=_install_second, daemon=True)
    worker.start()
    try:
        assert not installed.wait(timeout=0.2)
        assert active_context() is first
    finally:
        clear_context()

    assert installed.wait(timeout=2.0)
    assert active_context() is second
    clear_context()
    worker.join(timeout=2.0)
    assert active_context() is None
