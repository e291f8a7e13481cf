"""Extraction package interfaces."""

from .errors import (
    DecodeError,
    EnumerationError,
    ExtractionError,
    InvalidDisc,
    LibraryInitError,
    MetadataReadError,
    RasterError,
)
from .extractor import BookExtractor, ExtractionOptions
from .models import Book, CharacterCode, DiscFormat, Entry, Glyph, Subbook

__all__ = [
    "Book",
    "BookExtractor",
    "CharacterCode",
    "DecodeError",
    "DiscFormat",
    "EnumerationError",
    "Entry",
    "ExtractionError",
    "ExtractionOptions",
    "Glyph",
    "InvalidDisc",
    "LibraryInitError",
    "MetadataReadError",
    "RasterError",
    "Subbook",
]
