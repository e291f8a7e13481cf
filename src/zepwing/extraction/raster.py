"""Packed 1-bpp gaiji bitmap rasterization."""

from __future__ import annotations

import numpy as np
from PIL import Image

from zepwing.extraction.access.base import AccessLayer, FontKind
from zepwing.extraction.errors import RasterError

_WHITE = 255
_BLACK = 0


def bitmap_to_pixels(bitmap: bytes, width: int, height: int) -> np.ndarray:
    """Unpack MSB-first row data into a (height, width) array of 0/1 bits."""
    data = np.frombuffer(bitmap, dtype=np.uint8)
    ys, xs = np.mgrid[0:height, 0:width]
    byte_offsets = (ys * width) // 8 + xs // 8
    bit_offsets = 7 - xs % 8
    return (data[byte_offsets] >> bit_offsets) & 1


def pixels_to_image(pixels: np.ndarray) -> Image.Image:
    gray = np.where(pixels != 0, _BLACK, _WHITE).astype(np.uint8)
    return Image.fromarray(gray)


class GlyphRasterizer:
    """Render gaiji codepoints of the currently selected font into images."""

    def __init__(self, access: AccessLayer) -> None:
        self._access = access

    def render(self, codepoint: int, width: int, height: int, font: FontKind) -> Image.Image:
        if width <= 0 or height <= 0:
            raise RasterError("render", f"invalid glyph size {width}x{height}")

        expected = width * height // 8
        bitmap = self._access.character_bitmap(font, codepoint, expected)
        if len(bitmap) < expected:
            raise RasterError(
                f"{font.value}_font_character_bitmap",
                f"codepoint {codepoint} returned {len(bitmap)} bytes, expected {expected}",
            )
        return pixels_to_image(bitmap_to_pixels(bitmap[:expected], width, height))
