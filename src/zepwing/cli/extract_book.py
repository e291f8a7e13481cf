"""CLI command that extracts entries and gaiji glyphs from an EPWING/EB disc."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

from zepwing.export.gaiji_export import write_gaiji
from zepwing.export.json_export import write_entries
from zepwing.extraction.access import AccessLayer, build_default_access_layer
from zepwing.extraction.config import ExtractionSettings
from zepwing.extraction.errors import ExtractionError
from zepwing.extraction.extractor import BookExtractor, ExtractionOptions
from zepwing.extraction.models import GAIJI_SIZES


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="zepwing-extract",
        description="Extract dictionary entries and gaiji glyphs from an EPWING/EB disc",
    )
    parser.add_argument("path", help="Disc directory containing CATALOG or CATALOGS")
    parser.add_argument("--entries-path", default="", help="Output path for dictionary entries (JSON)")
    parser.add_argument("--entries-pretty", action="store_true", help="Pretty-print dictionary entries")
    for size in GAIJI_SIZES:
        parser.add_argument(
            f"--gaiji{size}-dir",
            default="",
            help=f"Output directory for gaiji glyphs (size {size})",
        )
    parser.add_argument(
        "--stub-gaiji",
        action="store_true",
        help="Replace gaiji references in text with {{n_<code>}} / {{w_<code>}} markers",
    )
    parser.add_argument("--library", default="", help="Path to the libeb shared library")
    return parser.parse_args(argv)


def _gaiji_directories(args: argparse.Namespace) -> dict[int, Path]:
    directories: dict[int, Path] = {}
    for size in GAIJI_SIZES:
        value = getattr(args, f"gaiji{size}_dir")
        if value:
            directories[size] = Path(value)
    return directories


def _build_access_layer(settings: ExtractionSettings) -> AccessLayer:
    return build_default_access_layer(settings.library_path)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)

    try:
        settings = ExtractionSettings.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2
    if args.library:
        settings = ExtractionSettings(
            library_path=args.library,
            hit_batch_size=settings.hit_batch_size,
            gaiji_sizes=settings.gaiji_sizes,
        )

    directories = _gaiji_directories(args)
    options = ExtractionOptions.build(
        set(directories) | settings.gaiji_sizes,
        stub_gaiji=args.stub_gaiji,
    )

    extractor = BookExtractor(_build_access_layer(settings), hit_batch_size=settings.hit_batch_size)
    try:
        book = extractor.extract(args.path, options)
    except ExtractionError as exc:
        LOGGER.error("Extraction failed for %s: %s", args.path, exc)
        return 1

    LOGGER.info(
        "Extracted %d subbooks (%d entries) from %s",
        len(book.subbooks),
        sum(len(subbook.entries) for subbook in book.subbooks),
        args.path,
    )

    if args.entries_path:
        written = write_entries(book, args.entries_path, pretty=args.entries_pretty)
        LOGGER.info("Wrote entries to %s", written)

    if directories:
        write_gaiji(book, directories)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
