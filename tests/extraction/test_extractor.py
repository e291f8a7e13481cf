from __future__ import annotations

import numpy as np
import pytest

from zepwing.extraction.access.base import EnumerationMode, FontKind, Position, SearchOrder
from zepwing.extraction.access.memory import (
    FontRef,
    MemoryAccessLayer,
    MemoryDisc,
    MemoryEntry,
    MemoryFont,
    MemorySubbook,
)
from zepwing.extraction.errors import DecodeError, InvalidDisc, RasterError
from zepwing.extraction.extractor import BookExtractor, ExtractionOptions
from zepwing.extraction.hooks import active_context
from zepwing.extraction.models import CharacterCode, DiscFormat, Entry


def _pixel_bitmap(x: int, y: int, width: int, height: int) -> bytes:
    bitmap = bytearray(width * height // 8)
    bitmap[(y * width) // 8 + x // 8] |= 1 << (7 - x % 8)
    return bytes(bitmap)


def _gaiji_subbook() -> MemorySubbook:
    return MemorySubbook(
        title="外字辞典",
        entries=[
            MemoryEntry(
                heading=["語", FontRef(FontKind.NARROW, 7)],
                text=["意味 ", FontRef(FontKind.WIDE, 42), " 終"],
            )
        ],
        copyright=["著作権", FontRef(FontKind.WIDE, 43)],
        fonts={
            16: MemoryFont(
                narrow_width=8,
                wide_width=16,
                height=16,
                narrow={7: _pixel_bitmap(1, 1, 8, 16)},
                wide={42: _pixel_bitmap(3, 4, 16, 16), 43: _pixel_bitmap(0, 0, 16, 16)},
            ),
            24: MemoryFont(
                narrow_width=16,
                wide_width=24,
                height=24,
                narrow={7: _pixel_bitmap(2, 2, 16, 24)},
                wide={42: _pixel_bitmap(20, 5, 24, 24), 43: _pixel_bitmap(0, 0, 24, 24)},
            ),
        },
    )


def test_single_entry_seen_by_two_passes_yields_one_entry() -> None:
    subbook = MemorySubbook(
        title="Sample",
        entries=[MemoryEntry(heading=["A"], text=["B"])],
        search_passes={SearchOrder.ALPHABET: [0], SearchOrder.KANA: [0]},
    )
    access = MemoryAccessLayer({"disc": MemoryDisc(subbooks=[subbook])})

    book = BookExtractor(access).extract("disc")

    assert len(book.subbooks) == 1
    only = book.subbooks[0]
    assert only.title == "Sample"
    assert only.copyright == ""
    assert only.entries == (Entry(heading="A", text="B"),)
    assert only.narrow_gaiji == {}
    assert only.wide_gaiji == {}
    assert access.calls == ["initialize", "bind", "finalize"]


def test_metadata_codes_map_to_symbolic_names() -> None:
    discs = {
        "epwing": MemoryDisc(subbooks=[], character_code=2, disc_code=1),
        "eb": MemoryDisc(subbooks=[], character_code=3, disc_code=0),
        "odd": MemoryDisc(subbooks=[], character_code=99, disc_code=-1),
    }
    extractor = BookExtractor(MemoryAccessLayer(discs))

    epwing = extractor.extract("epwing")
    eb = extractor.extract("eb")
    odd = extractor.extract("odd")

    assert (epwing.disc_format, epwing.character_code) == (DiscFormat.EPWING, CharacterCode.JISX0208)
    assert (eb.disc_format, eb.character_code) == (DiscFormat.EB, CharacterCode.JISX0208_GB2312)
    assert (odd.disc_format, odd.character_code) == (DiscFormat.INVALID, CharacterCode.INVALID)


def test_subbooks_keep_reported_order() -> None:
    disc = MemoryDisc(
        subbooks=[
            MemorySubbook(title="First", entries=[MemoryEntry(heading=["1"], text=["one"])]),
            MemorySubbook(title="Second", entries=[MemoryEntry(heading=["2"], text=["two"])]),
        ]
    )

    book = BookExtractor(MemoryAccessLayer({"disc": disc})).extract("disc")

    assert [subbook.title for subbook in book.subbooks] == ["First", "Second"]
    assert book.subbooks[1].entries == (Entry(heading="2", text="two"),)


def test_gaiji_rendered_per_requested_size_with_stub_markers() -> None:
    access = MemoryAccessLayer({"disc": MemoryDisc(subbooks=[_gaiji_subbook()])})
    options = ExtractionOptions.build([24, 16], stub_gaiji=True)

    book = BookExtractor(access).extract("disc", options)
    subbook = book.subbooks[0]

    assert subbook.title == "外字辞典"
    assert subbook.copyright == "著作権{{w_43}}"
    assert subbook.entries == (Entry(heading="語{{n_7}}", text="意味 {{w_42}} 終"),)
    assert sorted(subbook.wide_gaiji) == [42, 43]
    assert sorted(subbook.narrow_gaiji) == [7]

    wide = subbook.wide_gaiji[42]
    narrow = subbook.narrow_gaiji[7]
    assert wide.sizes == (16, 24)
    assert narrow.image(16).size == (8, 16)
    assert narrow.image(24).size == (16, 24)
    assert wide.image(30) is None
    assert np.asarray(wide.image(16))[4, 3] == 0
    assert np.asarray(wide.image(24))[5, 20] == 0


def test_gaiji_recorded_but_not_rendered_without_sizes() -> None:
    access = MemoryAccessLayer({"disc": MemoryDisc(subbooks=[_gaiji_subbook()])})

    book = BookExtractor(access).extract("disc", ExtractionOptions())

    assert book.subbooks[0].entries == (Entry(heading="語", text="意味  終"),)
    assert book.subbooks[0].wide_gaiji == {}


def test_sequential_enumeration_end_to_end() -> None:
    subbook = MemorySubbook(
        title="Cursor",
        entries=[MemoryEntry(heading=["x"], text=["1"]), MemoryEntry(heading=["y"], text=["2"])],
    )
    access = MemoryAccessLayer({"disc": MemoryDisc(subbooks=[subbook])}, mode=EnumerationMode.SEQUENTIAL)

    book = BookExtractor(access).extract("disc")

    assert [entry.heading for entry in book.subbooks[0].entries] == ["x", "y"]


def test_latin1_discs_decode_with_latin1_codec() -> None:
    subbook = MemorySubbook(title="Lexique", entries=[MemoryEntry(heading=["café"], text=["crème brûlée"])])
    access = MemoryAccessLayer({"disc": MemoryDisc(subbooks=[subbook], character_code=1)}, encoding="latin-1")

    book = BookExtractor(access).extract("disc")

    assert book.character_code is CharacterCode.ISO8859_1
    assert book.subbooks[0].entries == (Entry(heading="café", text="crème brûlée"),)


def test_bind_failure_raises_invalid_disc_and_finalizes() -> None:
    access = MemoryAccessLayer({})

    with pytest.raises(InvalidDisc, match="no disc found"):
        BookExtractor(access).extract("missing")

    assert access.calls[-1] == "finalize"
    assert not access.initialized


def test_decode_failure_releases_context_and_session() -> None:
    class _BrokenAccess(MemoryAccessLayer):
        def seek_text(self, position: Position) -> None:
            raise DecodeError("eb_seek_text", "failed to seek the text file")

    subbook = MemorySubbook(title="Broken", entries=[MemoryEntry(heading=["A"], text=["B"])])
    access = _BrokenAccess({"disc": MemoryDisc(subbooks=[subbook])})

    with pytest.raises(DecodeError, match="eb_seek_text failed"):
        BookExtractor(access).extract("disc")

    assert active_context() is None
    assert access.calls[-1] == "finalize"


def test_missing_font_size_is_a_raster_error() -> None:
    access = MemoryAccessLayer({"disc": MemoryDisc(subbooks=[_gaiji_subbook()])})

    with pytest.raises(RasterError, match="no font of size 48"):
        BookExtractor(access).extract("disc", ExtractionOptions.build([48]))

    assert active_context() is None


def test_options_reject_unknown_sizes() -> None:
    with pytest.raises(ValueError, match="Unsupported gaiji sizes"):
        ExtractionOptions.build([12])
