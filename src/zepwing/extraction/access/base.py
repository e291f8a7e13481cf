"""Capability contract shared by every disc access layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol, runtime_checkable

from zepwing.extraction.models import CharacterCode, DiscFormat

# Raw codes reported by eb_character_code / eb_disc_type.
CHARACTER_CODES: dict[int, CharacterCode] = {
    1: CharacterCode.ISO8859_1,
    2: CharacterCode.JISX0208,
    3: CharacterCode.JISX0208_GB2312,
}

DISC_CODES: dict[int, DiscFormat] = {
    0: DiscFormat.EB,
    1: DiscFormat.EPWING,
}


class BlockKind(Enum):
    HEADING = "heading"
    TEXT = "text"


class FontKind(Enum):
    NARROW = "narrow"
    WIDE = "wide"


class SearchOrder(Enum):
    ALPHABET = "alphabet"
    KANA = "kana"
    ASIS = "asis"


class EnumerationMode(Enum):
    HIT_LIST = "hit_list"     # eb_search_all_* followed by batched eb_hit_list
    SEQUENTIAL = "sequential" # eb_text + eb_forward_text cursor


@dataclass(frozen=True, slots=True)
class Position:
    """Location of a heading or text block inside the current subbook."""

    page: int
    offset: int


@dataclass(frozen=True, slots=True)
class Hit:
    heading: Position
    text: Position


@dataclass(frozen=True, slots=True)
class FontMetrics:
    """Pixel dimensions of the currently selected font resolution."""

    narrow_width: int
    wide_width: int
    height: int

    def width(self, font: FontKind) -> int:
        return self.narrow_width if font is FontKind.NARROW else self.wide_width


# Invoked mid-decode for each inline gaiji reference; a returned string is
# written into the decoded stream in place of the reference.
FontHook = Callable[[FontKind, int], str | None]


@runtime_checkable
class AccessLayer(Protocol):
    """Protocol that every disc access implementation must satisfy."""

    @property
    def enumeration_mode(self) -> EnumerationMode:
        """Content enumeration style supported by the bound disc."""

    def initialize(self) -> None:
        """Acquire library resources. Raises LibraryInitError."""

    def finalize(self) -> None:
        """Release the hookset, book and library handles."""

    def set_font_hook(self, hook: FontHook | None) -> None:
        """Register the callback fired for narrow and wide font references."""

    def bind(self, path: Path) -> None:
        """Bind a disc directory. Raises InvalidDisc."""

    def character_code(self) -> int: ...

    def disc_code(self) -> int: ...

    def subbook_list(self) -> list[int]: ...

    def set_subbook(self, code: int) -> None: ...

    def subbook_title(self) -> bytes: ...

    def copyright_position(self) -> Position | None:
        """Return the copyright text position, or None when absent."""

    def search_all(self, order: SearchOrder) -> bool:
        """Start a full-content enumeration; False when the order is unsupported."""

    def hit_list(self, max_hits: int) -> list[Hit]:
        """Return the next batch of hits; an empty list ends the pass."""

    def text_start(self) -> Position: ...

    def next_text(self, position: Position) -> Position | None:
        """Advance past the entry at position; None at end of content."""

    def seek_text(self, position: Position) -> None: ...

    def read_block(self, kind: BlockKind, buffer: bytearray) -> int:
        """Decode the block at the seek position into buffer, returning bytes used."""

    def set_font(self, size: int) -> None: ...

    def font_metrics(self) -> FontMetrics: ...

    def character_bitmap(self, font: FontKind, codepoint: int, size: int) -> bytes:
        """Return size bytes of packed 1-bpp bitmap data for the codepoint."""
