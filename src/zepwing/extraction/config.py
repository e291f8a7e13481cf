"""Runtime configuration for disc extraction."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping

from zepwing.extraction.models import GAIJI_SIZES
from zepwing.extraction.walker import DEFAULT_HIT_BATCH_SIZE


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_gaiji_sizes(*, name: str, raw_value: str) -> frozenset[int]:
    sizes: set[int] = set()
    for part in raw_value.split(","):
        part = part.strip()
        if not part:
            continue
        size = _parse_positive_int(name=name, raw_value=part)
        if size not in GAIJI_SIZES:
            allowed = ", ".join(str(value) for value in GAIJI_SIZES)
            raise ValueError(f"{name} entries must be one of {allowed}")
        sizes.add(size)
    return frozenset(sizes)


@dataclass(frozen=True, slots=True)
class ExtractionSettings:
    """Validated extraction settings."""

    library_path: str | None = None
    hit_batch_size: int = DEFAULT_HIT_BATCH_SIZE
    gaiji_sizes: frozenset[int] = frozenset()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ExtractionSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        library_path = source.get("ZEPWING_EB_LIBRARY", "").strip() or None

        batch_raw = source.get("ZEPWING_HIT_BATCH_SIZE", str(DEFAULT_HIT_BATCH_SIZE)).strip()
        if not batch_raw:
            raise ValueError("ZEPWING_HIT_BATCH_SIZE cannot be empty")
        hit_batch_size = _parse_positive_int(name="ZEPWING_HIT_BATCH_SIZE", raw_value=batch_raw)

        gaiji_sizes = _parse_gaiji_sizes(
            name="ZEPWING_GAIJI_SIZES",
            raw_value=source.get("ZEPWING_GAIJI_SIZES", ""),
        )

        return cls(library_path=library_path, hit_batch_size=hit_batch_size, gaiji_sizes=gaiji_sizes)
