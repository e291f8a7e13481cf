"""PNG output for rendered gaiji glyphs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from zepwing.extraction.models import Book, Glyph

logger = logging.getLogger(__name__)


def gaiji_filename(subbook_index: int, codepoint: int, variant: str, size: int) -> str:
    return f"{subbook_index}_{codepoint}_{variant}_{size}.png"


def write_gaiji(book: Book, directories: Mapping[int, str | Path]) -> list[Path]:
    """Write one PNG per subbook, codepoint, variant and size with a target directory."""

    targets = {size: Path(directory) for size, directory in directories.items() if directory}
    for directory in targets.values():
        directory.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for subbook_index, subbook in enumerate(book.subbooks):
        for variant, glyphs in (("n", subbook.narrow_gaiji), ("w", subbook.wide_gaiji)):
            written.extend(_write_glyph_set(targets, subbook_index, variant, glyphs))

    logger.info("Wrote %d gaiji images", len(written))
    return written


def _write_glyph_set(
    targets: Mapping[int, Path],
    subbook_index: int,
    variant: str,
    glyphs: Mapping[int, Glyph],
) -> list[Path]:
    written: list[Path] = []
    for codepoint, glyph in glyphs.items():
        for size, image in glyph.images.items():
            directory = targets.get(size)
            if directory is None:
                continue
            path = directory / gaiji_filename(subbook_index, codepoint, variant, size)
            image.save(path, format="PNG")
            written.append(path)
    return written
