"""Book and subbook orchestration over a disc access layer."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Iterable, Iterator

from PIL import Image

from zepwing.extraction.access.base import (
    CHARACTER_CODES,
    DISC_CODES,
    AccessLayer,
    BlockKind,
    FontKind,
)
from zepwing.extraction.hooks import ExtractionContext, FontReferenceInterceptor, extraction_context
from zepwing.extraction.models import GAIJI_SIZES, Book, CharacterCode, DiscFormat, Glyph, Subbook
from zepwing.extraction.raster import GlyphRasterizer
from zepwing.extraction.reader import AdaptiveTextReader
from zepwing.extraction.walker import DEFAULT_HIT_BATCH_SIZE, EntryWalker

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExtractionOptions:
    """Caller-selected outputs for one extraction run."""

    gaiji_sizes: frozenset[int] = frozenset()
    stub_gaiji: bool = False

    def __post_init__(self) -> None:
        unsupported = sorted(set(self.gaiji_sizes) - set(GAIJI_SIZES))
        if unsupported:
            raise ValueError(f"Unsupported gaiji sizes: {unsupported}")

    @classmethod
    def build(cls, gaiji_sizes: Iterable[int] = (), *, stub_gaiji: bool = False) -> "ExtractionOptions":
        return cls(gaiji_sizes=frozenset(gaiji_sizes), stub_gaiji=stub_gaiji)


@contextmanager
def open_session(access: AccessLayer, interceptor: FontReferenceInterceptor) -> Iterator[AccessLayer]:
    """Initialize the access layer with the font hook installed; always finalize."""

    try:
        access.initialize()
        access.set_font_hook(interceptor)
        yield access
    finally:
        access.finalize()


class BookExtractor:
    """Bind a disc and assemble its full document tree."""

    def __init__(self, access: AccessLayer, *, hit_batch_size: int = DEFAULT_HIT_BATCH_SIZE) -> None:
        self._access = access
        self._reader = AdaptiveTextReader(access)
        self._walker = EntryWalker(access, self._reader, hit_batch_size=hit_batch_size)
        self._rasterizer = GlyphRasterizer(access)

    @property
    def access(self) -> AccessLayer:
        return self._access

    def extract(self, path: str | Path, options: ExtractionOptions | None = None) -> Book:
        """Extract every subbook of the disc at path."""

        options = options or ExtractionOptions()
        source = Path(path)
        interceptor = FontReferenceInterceptor(stub_gaiji=options.stub_gaiji)

        with open_session(self._access, interceptor):
            self._access.bind(source)
            logger.info("Bound disc %s", source)

            character_code = CHARACTER_CODES.get(self._access.character_code(), CharacterCode.INVALID)
            disc_format = DISC_CODES.get(self._access.disc_code(), DiscFormat.INVALID)
            self._reader.codec = character_code.codec

            subbooks = tuple(self.extract_subbook(code, options) for code in self._access.subbook_list())

        return Book(disc_format=disc_format, character_code=character_code, subbooks=subbooks)

    def extract_subbook(self, code: int, options: ExtractionOptions) -> Subbook:
        """Select subbook code and extract its metadata, entries and gaiji."""

        self._access.set_subbook(code)

        with extraction_context(ExtractionContext()) as context:
            title = self._reader.decode(self._access.subbook_title())
            copyright_text = self._load_copyright()
            entries = self._walker.walk(context)
            logger.info("Subbook %d '%s': %d entries", code, title, len(entries))

            narrow: dict[int, dict[int, Image.Image]] = {}
            wide: dict[int, dict[int, Image.Image]] = {}
            for size in sorted(options.gaiji_sizes):
                self._render_gaiji(context, size, narrow, wide)

        if options.gaiji_sizes:
            logger.info("Subbook %d: %d narrow / %d wide gaiji rendered", code, len(narrow), len(wide))

        return Subbook(
            title=title,
            copyright=copyright_text,
            entries=tuple(entries),
            narrow_gaiji={codepoint: Glyph(images=images) for codepoint, images in sorted(narrow.items())},
            wide_gaiji={codepoint: Glyph(images=images) for codepoint, images in sorted(wide.items())},
        )

    def _load_copyright(self) -> str:
        position = self._access.copyright_position()
        if position is None:
            return ""
        return self._reader.read(position, BlockKind.TEXT)

    def _render_gaiji(
        self,
        context: ExtractionContext,
        size: int,
        narrow: dict[int, dict[int, Image.Image]],
        wide: dict[int, dict[int, Image.Image]],
    ) -> None:
        self._access.set_font(size)
        metrics = self._access.font_metrics()

        for font, glyphs in ((FontKind.NARROW, narrow), (FontKind.WIDE, wide)):
            width = metrics.width(font)
            for codepoint in sorted(context.codepoints(font)):
                image = self._rasterizer.render(codepoint, width, metrics.height, font)
                glyphs.setdefault(codepoint, {})[size] = image
