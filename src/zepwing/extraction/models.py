"""Document tree produced by a disc extraction run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from PIL import Image

GAIJI_SIZES: tuple[int, ...] = (16, 24, 30, 48)


class DiscFormat(Enum):
    EB = "eb"
    EPWING = "epwing"
    INVALID = "invalid"


class CharacterCode(Enum):
    ISO8859_1 = "iso8859-1"
    JISX0208 = "jisx0208"
    JISX0208_GB2312 = "jisx0208/gb2312"
    INVALID = "invalid"

    @property
    def codec(self) -> str:
        """Python codec used to decode text stored with this character code."""
        if self is CharacterCode.ISO8859_1:
            return "latin-1"
        return "euc_jp"


@dataclass(frozen=True, slots=True)
class Entry:
    """A single headword/definition pair."""

    heading: str
    text: str


@dataclass(frozen=True, slots=True)
class Glyph:
    """Rendered gaiji images keyed by pixel resolution."""

    images: Mapping[int, Image.Image] = field(default_factory=dict)

    def image(self, size: int) -> Image.Image | None:
        return self.images.get(size)

    @property
    def sizes(self) -> tuple[int, ...]:
        return tuple(sorted(self.images))


@dataclass(frozen=True, slots=True)
class Subbook:
    """One dictionary volume of a disc."""

    title: str
    copyright: str = ""
    entries: tuple[Entry, ...] = ()
    narrow_gaiji: Mapping[int, Glyph] = field(default_factory=dict)
    wide_gaiji: Mapping[int, Glyph] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Book:
    """Root extraction result for one disc."""

    disc_format: DiscFormat = DiscFormat.INVALID
    character_code: CharacterCode = CharacterCode.INVALID
    subbooks: tuple[Subbook, ...] = ()
