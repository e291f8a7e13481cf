"""Expose the src-layout ``zepwing`` modules when running from a checkout."""

from __future__ import annotations

from pathlib import Path

_ROOT = Path(__file__).resolve().parent.parent
_SRC_PACKAGE = _ROOT / "src" / "zepwing"

if _SRC_PACKAGE.is_dir():
    __path__.append(str(_SRC_PACKAGE))
