"""In-memory disc access layer.

Serves ``MemoryDisc`` fixtures through the same capability surface as the
libeb binding: truncating block reads, font hooks fired mid-decode, batched
hit lists per search order, sequential traversal and packed font bitmaps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence

from zepwing.extraction.access.base import (
    BlockKind,
    EnumerationMode,
    FontHook,
    FontKind,
    FontMetrics,
    Hit,
    Position,
    SearchOrder,
)
from zepwing.extraction.errors import (
    DecodeError,
    EnumerationError,
    InvalidDisc,
    LibraryInitError,
    MetadataReadError,
    RasterError,
)


@dataclass(frozen=True, slots=True)
class FontRef:
    """Inline gaiji reference embedded in block content."""

    font: FontKind
    codepoint: int


Segment = str | FontRef


@dataclass(slots=True)
class MemoryEntry:
    heading: Sequence[Segment]
    text: Sequence[Segment]


@dataclass(slots=True)
class MemoryFont:
    """Metrics and packed bitmaps for one font resolution."""

    narrow_width: int
    wide_width: int
    height: int
    narrow: dict[int, bytes] = field(default_factory=dict)
    wide: dict[int, bytes] = field(default_factory=dict)


@dataclass(slots=True)
class MemorySubbook:
    title: str
    entries: list[MemoryEntry] = field(default_factory=list)
    copyright: Sequence[Segment] | None = None
    # Entry indexes yielded by each supported search order; None means a
    # single alphabet pass over every entry.
    search_passes: dict[SearchOrder, list[int]] | None = None
    fonts: dict[int, MemoryFont] = field(default_factory=dict)


@dataclass(slots=True)
class MemoryDisc:
    subbooks: list[MemorySubbook] = field(default_factory=list)
    character_code: int = 2
    disc_code: int = 1


class MemoryAccessLayer:
    """Access layer over discs held in memory, keyed by bind path."""

    def __init__(
        self,
        discs: Mapping[str, MemoryDisc],
        *,
        mode: EnumerationMode = EnumerationMode.HIT_LIST,
        encoding: str = "euc_jp",
    ) -> None:
        self._discs = {str(Path(path)): disc for path, disc in discs.items()}
        self._mode = mode
        self._encoding = encoding
        self._hook: FontHook | None = None
        self._initialized = False
        self._disc: MemoryDisc | None = None
        self._subbook: MemorySubbook | None = None
        self._pending_hits: list[Hit] = []
        self._cursor: int | None = None
        self._font: MemoryFont | None = None
        self.calls: list[str] = []
        self.read_count = 0

    @property
    def enumeration_mode(self) -> EnumerationMode:
        return self._mode

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        self.calls.append("initialize")
        if self._initialized:
            raise LibraryInitError("initialize", "library already initialized")
        self._initialized = True

    def finalize(self) -> None:
        self.calls.append("finalize")
        self._initialized = False
        self._disc = None
        self._subbook = None
        self._hook = None

    def set_font_hook(self, hook: FontHook | None) -> None:
        self._hook = hook

    def bind(self, path: Path) -> None:
        self.calls.append("bind")
        self._require_initialized()
        disc = self._discs.get(str(Path(path)))
        if disc is None:
            raise InvalidDisc("bind", f"no disc found (path={path})")
        self._disc = disc

    def character_code(self) -> int:
        return self._require_disc().character_code

    def disc_code(self) -> int:
        return self._require_disc().disc_code

    def subbook_list(self) -> list[int]:
        return list(range(len(self._require_disc().subbooks)))

    def set_subbook(self, code: int) -> None:
        subbooks = self._require_disc().subbooks
        if not 0 <= code < len(subbooks):
            raise MetadataReadError("set_subbook", f"no such subbook {code}")
        self._subbook = subbooks[code]
        self._pending_hits = []
        self._cursor = None
        self._font = None

    def subbook_title(self) -> bytes:
        return self._require_subbook().title.encode(self._encoding)

    def copyright_position(self) -> Position | None:
        subbook = self._require_subbook()
        if subbook.copyright is None:
            return None
        return Position(page=len(subbook.entries), offset=0)

    def search_all(self, order: SearchOrder) -> bool:
        subbook = self._require_subbook()
        passes = subbook.search_passes
        if passes is None:
            passes = {SearchOrder.ALPHABET: list(range(len(subbook.entries)))}
        if order not in passes:
            return False
        self._pending_hits = [
            Hit(heading=Position(index, 0), text=Position(index, 1)) for index in passes[order]
        ]
        return True

    def hit_list(self, max_hits: int) -> list[Hit]:
        self._require_subbook()
        batch, self._pending_hits = self._pending_hits[:max_hits], self._pending_hits[max_hits:]
        return batch

    def text_start(self) -> Position:
        if not self._require_subbook().entries:
            raise EnumerationError("text_start", "subbook has no text")
        return Position(0, 0)

    def next_text(self, position: Position) -> Position | None:
        entries = self._require_subbook().entries
        following = position.page + 1
        if following >= len(entries):
            return None
        return Position(following, 0)

    def seek_text(self, position: Position) -> None:
        subbook = self._require_subbook()
        limit = len(subbook.entries) + (1 if subbook.copyright is not None else 0)
        if not 0 <= position.page < limit:
            raise DecodeError("seek_text", f"position {position.page}:{position.offset} out of range")
        self._cursor = position.page

    def read_block(self, kind: BlockKind, buffer: bytearray) -> int:
        subbook = self._require_subbook()
        if self._cursor is None:
            raise DecodeError(f"read_{kind.value}", "no previous seek")
        self.read_count += 1

        if self._cursor == len(subbook.entries):
            segments = (subbook.copyright or ()) if kind is BlockKind.TEXT else ()
        else:
            entry = subbook.entries[self._cursor]
            segments = entry.heading if kind is BlockKind.HEADING else entry.text

        # One byte stays reserved for the terminating NUL.
        data = self._render(segments)[: len(buffer) - 1]
        buffer[: len(data)] = data
        buffer[len(data)] = 0
        return len(data)

    def set_font(self, size: int) -> None:
        font = self._require_subbook().fonts.get(size)
        if font is None:
            raise RasterError("set_font", f"no font of size {size}")
        self._font = font

    def font_metrics(self) -> FontMetrics:
        font = self._require_font()
        return FontMetrics(narrow_width=font.narrow_width, wide_width=font.wide_width, height=font.height)

    def character_bitmap(self, font: FontKind, codepoint: int, size: int) -> bytes:
        selected = self._require_font()
        bitmaps = selected.narrow if font is FontKind.NARROW else selected.wide
        bitmap = bitmaps.get(codepoint)
        if bitmap is None:
            raise RasterError(f"{font.value}_font_character_bitmap", f"no such character bitmap {codepoint}")
        return bitmap[:size]

    def _render(self, segments: Sequence[Segment]) -> bytes:
        parts: list[bytes] = []
        for segment in segments:
            if isinstance(segment, FontRef):
                marker = self._hook(segment.font, segment.codepoint) if self._hook is not None else None
                if marker:
                    parts.append(marker.encode("ascii"))
            else:
                parts.append(segment.encode(self._encoding))
        return b"".join(parts)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise LibraryInitError("memory", "access layer is not initialized")

    def _require_disc(self) -> MemoryDisc:
        self._require_initialized()
        if self._disc is None:
            raise MetadataReadError("memory", "no disc bound")
        return self._disc

    def _require_subbook(self) -> MemorySubbook:
        self._require_disc()
        if self._subbook is None:
            raise MetadataReadError("memory", "no current subbook")
        return self._subbook

    def _require_font(self) -> MemoryFont:
        self._require_subbook()
        if self._font is None:
            raise RasterError("memory", "no current font")
        return self._font
