"""ctypes binding to the EB Library (libeb) for EPWING and EB discs.

``EB_Book`` and ``EB_Hookset`` are treated as opaque: the library
initializes them in caller-allocated storage, so we reserve blocks well
above their ``sizeof`` in eb 4.x and only ever hand out pointers.

Hit-list enumeration relies on ``eb_search_all_alphabet`` and friends, which
only patched builds of libeb export.  When they are missing the layer falls
back to sequential ``eb_text`` / ``eb_forward_text`` traversal.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
from pathlib import Path

from zepwing.extraction.access.base import (
    BlockKind,
    EnumerationMode,
    FontHook,
    FontKind,
    FontMetrics,
    Hit,
    Position,
    SearchOrder,
)
from zepwing.extraction.errors import (
    DecodeError,
    EnumerationError,
    ExtractionError,
    InvalidDisc,
    LibraryInitError,
    MetadataReadError,
    RasterError,
)

logger = logging.getLogger(__name__)

EB_SUCCESS = 0
EB_ERR_END_OF_CONTENT = 61
EB_MAX_SUBBOOKS = 50
EB_MAX_TITLE_LENGTH = 80

EB_HOOK_NARROW_FONT = 20
EB_HOOK_WIDE_FONT = 21

# Any non-zero code returned from a hook aborts the running read.
_HOOK_ABORT = 1

_BOOK_STORAGE_BYTES = 64 * 1024
_HOOKSET_STORAGE_BYTES = 16 * 1024

FONT_CODES: dict[int, int] = {16: 0, 24: 1, 30: 2, 48: 3}

_SEARCH_FUNCTIONS: dict[SearchOrder, str] = {
    SearchOrder.ALPHABET: "eb_search_all_alphabet",
    SearchOrder.KANA: "eb_search_all_kana",
    SearchOrder.ASIS: "eb_search_all_asis",
}


class EBPosition(ctypes.Structure):
    _fields_ = [("page", ctypes.c_int), ("offset", ctypes.c_int)]

    @classmethod
    def from_position(cls, position: Position) -> "EBPosition":
        return cls(position.page, position.offset)

    def to_position(self) -> Position:
        return Position(page=self.page, offset=self.offset)


class EBHit(ctypes.Structure):
    _fields_ = [("heading", EBPosition), ("text", EBPosition)]


# EB_Error_Code (*)(EB_Book *, EB_Appendix *, void *, EB_Hook_Code, int, const unsigned int *)
EB_HOOK_FUNCTION = ctypes.CFUNCTYPE(
    ctypes.c_int,
    ctypes.c_void_p,
    ctypes.c_void_p,
    ctypes.c_void_p,
    ctypes.c_int,
    ctypes.c_int,
    ctypes.POINTER(ctypes.c_uint),
)


class EBHook(ctypes.Structure):
    _fields_ = [("code", ctypes.c_int), ("function", EB_HOOK_FUNCTION)]


def find_libeb(override: str | None = None) -> str:
    """Resolve the libeb shared object from an explicit override or the system search path."""

    if override:
        return override
    found = ctypes.util.find_library("eb")
    if not found:
        raise LibraryInitError("find_library", "libeb shared library not found; set ZEPWING_EB_LIBRARY")
    return found


def _declare(lib: ctypes.CDLL) -> None:
    c_int_p = ctypes.POINTER(ctypes.c_int)
    vp = ctypes.c_void_p

    signatures: dict[str, tuple[object, list[object]]] = {
        "eb_initialize_library": (ctypes.c_int, []),
        "eb_finalize_library": (None, []),
        "eb_initialize_book": (None, [vp]),
        "eb_finalize_book": (None, [vp]),
        "eb_initialize_hookset": (None, [vp]),
        "eb_finalize_hookset": (None, [vp]),
        "eb_set_hook": (ctypes.c_int, [vp, ctypes.POINTER(EBHook)]),
        "eb_write_text_string": (ctypes.c_int, [vp, ctypes.c_char_p]),
        "eb_error_string": (ctypes.c_char_p, [ctypes.c_int]),
        "eb_bind": (ctypes.c_int, [vp, ctypes.c_char_p]),
        "eb_character_code": (ctypes.c_int, [vp, c_int_p]),
        "eb_disc_type": (ctypes.c_int, [vp, c_int_p]),
        "eb_subbook_list": (ctypes.c_int, [vp, c_int_p, c_int_p]),
        "eb_set_subbook": (ctypes.c_int, [vp, ctypes.c_int]),
        "eb_subbook_title": (ctypes.c_int, [vp, ctypes.c_char_p]),
        "eb_have_copyright": (ctypes.c_int, [vp]),
        "eb_copyright": (ctypes.c_int, [vp, ctypes.POINTER(EBPosition)]),
        "eb_hit_list": (ctypes.c_int, [vp, ctypes.c_int, ctypes.POINTER(EBHit), c_int_p]),
        "eb_text": (ctypes.c_int, [vp, ctypes.POINTER(EBPosition)]),
        "eb_forward_text": (ctypes.c_int, [vp, vp]),
        "eb_tell_text": (ctypes.c_int, [vp, ctypes.POINTER(EBPosition)]),
        "eb_seek_text": (ctypes.c_int, [vp, ctypes.POINTER(EBPosition)]),
        "eb_read_heading": (
            ctypes.c_int,
            [vp, vp, vp, vp, ctypes.c_size_t, ctypes.c_void_p, ctypes.POINTER(ctypes.c_ssize_t)],
        ),
        "eb_read_text": (
            ctypes.c_int,
            [vp, vp, vp, vp, ctypes.c_size_t, ctypes.c_void_p, ctypes.POINTER(ctypes.c_ssize_t)],
        ),
        "eb_set_font": (ctypes.c_int, [vp, ctypes.c_int]),
        "eb_narrow_font_width": (ctypes.c_int, [vp, c_int_p]),
        "eb_wide_font_width": (ctypes.c_int, [vp, c_int_p]),
        "eb_font_height": (ctypes.c_int, [vp, c_int_p]),
        "eb_narrow_font_character_bitmap": (ctypes.c_int, [vp, ctypes.c_int, ctypes.c_char_p]),
        "eb_wide_font_character_bitmap": (ctypes.c_int, [vp, ctypes.c_int, ctypes.c_char_p]),
    }
    for name in _SEARCH_FUNCTIONS.values():
        signatures[name] = (ctypes.c_int, [vp])

    for name, (restype, argtypes) in signatures.items():
        function = getattr(lib, name, None)
        if function is None:
            continue
        function.restype = restype
        function.argtypes = argtypes


class LibEBAccessLayer:
    """Access layer backed by a dynamically loaded libeb."""

    def __init__(self, library_path: str | None = None) -> None:
        self._library_path = library_path
        self._lib: ctypes.CDLL | None = None
        self._book: ctypes.Array[ctypes.c_char] | None = None
        self._hookset: ctypes.Array[ctypes.c_char] | None = None
        self._library_initialized = False
        self._font_hook: FontHook | None = None
        self._hook_error: BaseException | None = None
        self._mode = EnumerationMode.SEQUENTIAL
        # Keeps the trampoline alive while libeb holds its address.
        self._trampoline = EB_HOOK_FUNCTION(self._dispatch_hook)

    @property
    def enumeration_mode(self) -> EnumerationMode:
        return self._mode

    # -- lifecycle -----------------------------------------------------------

    def initialize(self) -> None:
        path = find_libeb(self._library_path)
        try:
            lib = ctypes.CDLL(path)
        except OSError as exc:
            raise LibraryInitError("dlopen", f"{path}: {exc}") from exc
        _declare(lib)
        self._lib = lib

        code = lib.eb_initialize_library()
        if code != EB_SUCCESS:
            raise LibraryInitError("eb_initialize_library", self._error_text(code))
        self._library_initialized = True

        self._book = ctypes.create_string_buffer(_BOOK_STORAGE_BYTES)
        lib.eb_initialize_book(self._book)

        self._hookset = ctypes.create_string_buffer(_HOOKSET_STORAGE_BYTES)
        lib.eb_initialize_hookset(self._hookset)

        for hook_code in (EB_HOOK_NARROW_FONT, EB_HOOK_WIDE_FONT):
            hook = EBHook(hook_code, self._trampoline)
            code = lib.eb_set_hook(self._hookset, ctypes.byref(hook))
            if code != EB_SUCCESS:
                raise LibraryInitError("eb_set_hook", self._error_text(code))

        self._mode = EnumerationMode.HIT_LIST if self.supports_hit_lists else EnumerationMode.SEQUENTIAL
        logger.debug("Loaded %s (%s enumeration)", path, self._mode.value)

    def finalize(self) -> None:
        lib = self._lib
        if lib is None:
            return
        if self._hookset is not None:
            lib.eb_finalize_hookset(self._hookset)
            self._hookset = None
        if self._book is not None:
            lib.eb_finalize_book(self._book)
            self._book = None
        if self._library_initialized:
            lib.eb_finalize_library()
            self._library_initialized = False
        self._lib = None

    @property
    def supports_hit_lists(self) -> bool:
        lib = self._require_lib()
        return all(hasattr(lib, name) for name in _SEARCH_FUNCTIONS.values())

    def set_font_hook(self, hook: FontHook | None) -> None:
        self._font_hook = hook

    def bind(self, path: Path) -> None:
        lib = self._require_lib()
        code = lib.eb_bind(self._book, str(path).encode())
        if code != EB_SUCCESS:
            raise InvalidDisc("eb_bind", f"{self._error_text(code)} (path={path})")

    # -- metadata ------------------------------------------------------------

    def character_code(self) -> int:
        return self._query_int("eb_character_code", MetadataReadError)

    def disc_code(self) -> int:
        return self._query_int("eb_disc_type", MetadataReadError)

    def subbook_list(self) -> list[int]:
        lib = self._require_lib()
        codes = (ctypes.c_int * EB_MAX_SUBBOOKS)()
        count = ctypes.c_int()
        code = lib.eb_subbook_list(self._book, codes, ctypes.byref(count))
        self._check(code, "eb_subbook_list", MetadataReadError)
        return list(codes[: count.value])

    def set_subbook(self, code: int) -> None:
        lib = self._require_lib()
        self._check(lib.eb_set_subbook(self._book, code), "eb_set_subbook", MetadataReadError)

    def subbook_title(self) -> bytes:
        lib = self._require_lib()
        title = ctypes.create_string_buffer(EB_MAX_TITLE_LENGTH + 1)
        self._check(lib.eb_subbook_title(self._book, title), "eb_subbook_title", MetadataReadError)
        return title.value

    def copyright_position(self) -> Position | None:
        lib = self._require_lib()
        if not lib.eb_have_copyright(self._book):
            return None
        position = EBPosition()
        self._check(lib.eb_copyright(self._book, ctypes.byref(position)), "eb_copyright", MetadataReadError)
        return position.to_position()

    # -- enumeration ---------------------------------------------------------

    def search_all(self, order: SearchOrder) -> bool:
        lib = self._require_lib()
        function = getattr(lib, _SEARCH_FUNCTIONS[order], None)
        if function is None:
            return False
        return function(self._book) == EB_SUCCESS

    def hit_list(self, max_hits: int) -> list[Hit]:
        lib = self._require_lib()
        hits = (EBHit * max_hits)()
        count = ctypes.c_int()
        code = lib.eb_hit_list(self._book, max_hits, hits, ctypes.byref(count))
        self._check(code, "eb_hit_list", EnumerationError)
        return [Hit(heading=hit.heading.to_position(), text=hit.text.to_position()) for hit in hits[: count.value]]

    def text_start(self) -> Position:
        lib = self._require_lib()
        position = EBPosition()
        self._check(lib.eb_text(self._book, ctypes.byref(position)), "eb_text", EnumerationError)
        return position.to_position()

    def next_text(self, position: Position) -> Position | None:
        lib = self._require_lib()
        self.seek_text(position)
        code = lib.eb_forward_text(self._book, None)
        if code == EB_ERR_END_OF_CONTENT:
            return None
        self._check(code, "eb_forward_text", EnumerationError)

        following = EBPosition()
        self._check(lib.eb_tell_text(self._book, ctypes.byref(following)), "eb_tell_text", EnumerationError)
        return following.to_position()

    # -- text ----------------------------------------------------------------

    def seek_text(self, position: Position) -> None:
        lib = self._require_lib()
        target = EBPosition.from_position(position)
        self._check(lib.eb_seek_text(self._book, ctypes.byref(target)), "eb_seek_text", DecodeError)

    def read_block(self, kind: BlockKind, buffer: bytearray) -> int:
        lib = self._require_lib()
        name = "eb_read_heading" if kind is BlockKind.HEADING else "eb_read_text"
        function = getattr(lib, name)

        data = (ctypes.c_char * len(buffer)).from_buffer(buffer)
        used = ctypes.c_ssize_t()
        self._hook_error = None
        code = function(self._book, None, self._hookset, None, len(buffer), data, ctypes.byref(used))
        del data

        if self._hook_error is not None:
            error, self._hook_error = self._hook_error, None
            raise error
        self._check(code, name, DecodeError)
        return used.value

    # -- fonts ---------------------------------------------------------------

    def set_font(self, size: int) -> None:
        lib = self._require_lib()
        font_code = FONT_CODES.get(size)
        if font_code is None:
            raise RasterError("eb_set_font", f"unsupported font size {size}")
        self._check(lib.eb_set_font(self._book, font_code), "eb_set_font", RasterError)

    def font_metrics(self) -> FontMetrics:
        return FontMetrics(
            narrow_width=self._query_int("eb_narrow_font_width", RasterError),
            wide_width=self._query_int("eb_wide_font_width", RasterError),
            height=self._query_int("eb_font_height", RasterError),
        )

    def character_bitmap(self, font: FontKind, codepoint: int, size: int) -> bytes:
        lib = self._require_lib()
        name = f"eb_{font.value}_font_character_bitmap"
        bitmap = ctypes.create_string_buffer(size)
        self._check(getattr(lib, name)(self._book, codepoint, bitmap), name, RasterError)
        return bitmap.raw

    # -- helpers -------------------------------------------------------------

    def _dispatch_hook(self, book, appendix, container, hook_code, argc, argv) -> int:
        if self._font_hook is None:
            return EB_SUCCESS
        try:
            font = FontKind.NARROW if hook_code == EB_HOOK_NARROW_FONT else FontKind.WIDE
            marker = self._font_hook(font, int(argv[0]))
            if marker:
                self._lib.eb_write_text_string(book, marker.encode("ascii"))  # type: ignore[union-attr]
        except Exception as exc:
            self._hook_error = exc
            return _HOOK_ABORT
        return EB_SUCCESS

    def _query_int(self, name: str, error_type: type[ExtractionError]) -> int:
        lib = self._require_lib()
        value = ctypes.c_int()
        self._check(getattr(lib, name)(self._book, ctypes.byref(value)), name, error_type)
        return value.value

    def _check(self, code: int, operation: str, error_type: type[ExtractionError]) -> None:
        if code != EB_SUCCESS:
            raise error_type(operation, self._error_text(code))

    def _error_text(self, code: int) -> str:
        lib = self._lib
        if lib is None:
            return f"error code {code}"
        raw = lib.eb_error_string(code)
        return raw.decode("utf-8", errors="replace") if raw else f"error code {code}"

    def _require_lib(self) -> ctypes.CDLL:
        if self._lib is None or self._book is None:
            raise LibraryInitError("libeb", "access layer is not initialized")
        return self._lib
