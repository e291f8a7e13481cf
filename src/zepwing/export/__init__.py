"""Writers for extracted book content."""

from zepwing.export.gaiji_export import gaiji_filename, write_gaiji
from zepwing.export.json_export import book_to_payload, write_entries

__all__ = ["book_to_payload", "gaiji_filename", "write_entries", "write_gaiji"]
