"""Disc access layer implementations and contracts."""

from .base import (
    AccessLayer,
    BlockKind,
    EnumerationMode,
    FontHook,
    FontKind,
    FontMetrics,
    Hit,
    Position,
    SearchOrder,
)
from .libeb import LibEBAccessLayer
from .memory import FontRef, MemoryAccessLayer, MemoryDisc, MemoryEntry, MemoryFont, MemorySubbook


def build_default_access_layer(library_path: str | None = None) -> AccessLayer:
    """Return the libeb-backed access layer used for real discs."""
    return LibEBAccessLayer(library_path)


__all__ = [
    "AccessLayer",
    "BlockKind",
    "EnumerationMode",
    "FontHook",
    "FontKind",
    "FontMetrics",
    "FontRef",
    "Hit",
    "LibEBAccessLayer",
    "MemoryAccessLayer",
    "MemoryDisc",
    "MemoryEntry",
    "MemoryFont",
    "MemorySubbook",
    "Position",
    "SearchOrder",
    "build_default_access_layer",
]
