"""Error taxonomy for disc extraction failures."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ExtractionError(Exception):
    """Terminal failure reported by an access layer operation."""

    operation: str
    message: str

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.message}"


class LibraryInitError(ExtractionError):
    """The access library could not be loaded or initialized."""


class InvalidDisc(ExtractionError):
    """The bound path does not contain a recognizable disc."""


class MetadataReadError(ExtractionError):
    """Character code, disc type, subbook list, title or copyright query failed."""


class EnumerationError(ExtractionError):
    """Hit list or sequential cursor failure."""


class DecodeError(ExtractionError):
    """Seek, heading read or text read failure."""


class RasterError(ExtractionError):
    """Font selection, metrics or bitmap failure."""
