from __future__ import annotations

from pathlib import Path

import pytest

from zepwing.extraction.access.base import BlockKind, Position
from zepwing.extraction.access.memory import MemoryAccessLayer, MemoryDisc, MemoryEntry, MemorySubbook
from zepwing.extraction.errors import DecodeError
from zepwing.extraction.reader import DEFAULT_BUFFER_SIZE, SAFETY_MARGIN, AdaptiveTextReader


def _prepared_access(*texts: str) -> MemoryAccessLayer:
    subbook = MemorySubbook(
        title="Reader",
        entries=[MemoryEntry(heading=[f"h{index}"], text=[text]) for index, text in enumerate(texts)],
    )
    access = MemoryAccessLayer({"disc": MemoryDisc(subbooks=[subbook])})
    access.initialize()
    access.bind(Path("disc"))
    access.set_subbook(0)
    return access


def test_reader_grows_buffer_until_content_fits() -> None:
    body = "x" * 100
    access = _prepared_access(body)
    reader = AdaptiveTextReader(access)

    assert reader.buffer_size == DEFAULT_BUFFER_SIZE
    text = reader.read(Position(0, 1), BlockKind.TEXT)

    assert text == body
    assert len(body) + SAFETY_MARGIN < reader.buffer_size
    assert reader.buffer_size == DEFAULT_BUFFER_SIZE * 8


def test_reader_is_idempotent_for_same_position() -> None:
    access = _prepared_access("y" * 60)
    reader = AdaptiveTextReader(access)

    first = reader.read(Position(0, 1), BlockKind.TEXT)
    reads_after_first = access.read_count
    second = reader.read(Position(0, 1), BlockKind.TEXT)

    assert first == second
    assert access.read_count == reads_after_first + 1


def test_reader_retries_when_content_lands_inside_margin() -> None:
    fits = _prepared_access("a" * (DEFAULT_BUFFER_SIZE - SAFETY_MARGIN - 1))
    reader = AdaptiveTextReader(fits)
    reader.read(Position(0, 1), BlockKind.TEXT)
    assert fits.read_count == 1

    borderline = _prepared_access("b" * (DEFAULT_BUFFER_SIZE - SAFETY_MARGIN))
    reader = AdaptiveTextReader(borderline)
    text = reader.read(Position(0, 1), BlockKind.TEXT)

    assert text == "b" * (DEFAULT_BUFFER_SIZE - SAFETY_MARGIN)
    assert borderline.read_count == 2
    assert reader.buffer_size == DEFAULT_BUFFER_SIZE * 2


def test_reader_decodes_euc_jp_headings_and_text() -> None:
    access = _prepared_access("辞書の本文です")
    reader = AdaptiveTextReader(access)

    assert reader.read(Position(0, 0), BlockKind.HEADING) == "h0"
    assert reader.read(Position(0, 1), BlockKind.TEXT) == "辞書の本文です"


def test_reader_propagates_seek_failures_without_retry() -> None:
    access = _prepared_access("only entry")
    reader = AdaptiveTextReader(access)

    with pytest.raises(DecodeError, match="seek_text"):
        reader.read(Position(5, 0), BlockKind.TEXT)

    assert access.read_count == 0
    assert reader.buffer_size == DEFAULT_BUFFER_SIZE


def test_reader_rejects_buffer_smaller_than_margin() -> None:
    access = _prepared_access("irrelevant")

    with pytest.raises(ValueError, match="initial_size"):
        AdaptiveTextReader(access, initial_size=SAFETY_MARGIN)
