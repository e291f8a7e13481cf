"""Exhaustive, deduplicated entry enumeration for the selected subbook."""

from __future__ import annotations

import logging

from zepwing.extraction.access.base import AccessLayer, BlockKind, EnumerationMode, Position, SearchOrder
from zepwing.extraction.dedupe import register_entry
from zepwing.extraction.hooks import ExtractionContext
from zepwing.extraction.models import Entry
from zepwing.extraction.reader import AdaptiveTextReader

logger = logging.getLogger(__name__)

DEFAULT_HIT_BATCH_SIZE = 256
SEARCH_ORDERS: tuple[SearchOrder, ...] = (SearchOrder.ALPHABET, SearchOrder.KANA, SearchOrder.ASIS)


class EntryWalker:
    """Collect every entry of the current subbook exactly once."""

    def __init__(
        self,
        access: AccessLayer,
        reader: AdaptiveTextReader,
        *,
        hit_batch_size: int = DEFAULT_HIT_BATCH_SIZE,
    ) -> None:
        if hit_batch_size < 1:
            raise ValueError("hit_batch_size must be >= 1")
        self._access = access
        self._reader = reader
        self._hit_batch_size = hit_batch_size

    def walk(self, context: ExtractionContext) -> list[Entry]:
        if self._access.enumeration_mode is EnumerationMode.SEQUENTIAL:
            return self._walk_sequential(context)
        return self._walk_hit_lists(context)

    def _walk_hit_lists(self, context: ExtractionContext) -> list[Entry]:
        entries: list[Entry] = []

        for order in SEARCH_ORDERS:
            if not self._access.search_all(order):
                logger.debug("Search order %s not supported, skipping", order.value)
                continue

            hit_count = 0
            while True:
                hits = self._access.hit_list(self._hit_batch_size)
                if not hits:
                    break
                hit_count += len(hits)
                for hit in hits:
                    entry = self._read_entry(hit.heading, hit.text)
                    if register_entry(context.seen_checksums, entry):
                        entries.append(entry)

            logger.debug("Search order %s yielded %d hits", order.value, hit_count)

        return entries

    def _walk_sequential(self, context: ExtractionContext) -> list[Entry]:
        entries: list[Entry] = []
        position: Position | None = self._access.text_start()

        while position is not None:
            entry = self._read_entry(position, position)
            if register_entry(context.seen_checksums, entry):
                entries.append(entry)
            position = self._access.next_text(position)

        return entries

    def _read_entry(self, heading_position: Position, text_position: Position) -> Entry:
        heading = self._reader.read(heading_position, BlockKind.HEADING)
        text = self._reader.read(text_position, BlockKind.TEXT)
        return Entry(heading=heading, text=text)
