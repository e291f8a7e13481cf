"""Variable-length text block reader with a self-growing scratch buffer."""

from __future__ import annotations

import logging

from zepwing.extraction.access.base import AccessLayer, BlockKind, Position

logger = logging.getLogger(__name__)

# Enough for one line of EUC-JP text plus margin; grows on demand.
DEFAULT_BUFFER_SIZE = 22
# A read that ends within this many bytes of capacity may have been truncated.
SAFETY_MARGIN = 8


class AdaptiveTextReader:
    """Read heading and text blocks, retrying with a larger buffer on truncation."""

    def __init__(
        self,
        access: AccessLayer,
        *,
        codec: str = "euc_jp",
        initial_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        if initial_size <= SAFETY_MARGIN:
            raise ValueError(f"initial_size must be > {SAFETY_MARGIN}")
        self._access = access
        self._codec = codec
        self._buffer = bytearray(initial_size)

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    @property
    def codec(self) -> str:
        return self._codec

    @codec.setter
    def codec(self, value: str) -> None:
        self._codec = value

    def read(self, position: Position, kind: BlockKind) -> str:
        """Return the decoded block stored at position."""

        while True:
            self._access.seek_text(position)
            used = self._access.read_block(kind, self._buffer)
            if used + SAFETY_MARGIN < len(self._buffer):
                return self.decode(bytes(self._buffer[:used]))

            logger.debug(
                "Growing %s buffer from %d to %d bytes at %s",
                kind.value,
                len(self._buffer),
                len(self._buffer) * 2,
                position,
            )
            self._buffer = bytearray(len(self._buffer) * 2)

    def decode(self, raw: bytes) -> str:
        return raw.split(b"\x00", 1)[0].decode(self._codec, errors="replace")
