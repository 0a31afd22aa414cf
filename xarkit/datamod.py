"""Data-module protocol and the archive state that modules consult.

Data passes through a chain of modules on its way into the heap
(``to_heap_*``) and on its way out of it (``from_heap_*``).  Each module
sees every chunk.  The ``*_in`` and ``*_out`` hooks return the possibly
transformed chunk, and the ``*_done`` hooks finish the work once the
stream ends.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Union

from .tree import Prop, XarFile

OPT_FILE_CHECKSUM = "file-chksum"
OPT_COMPRESSION = "compression"
OPT_COMPRESSION_ARG = "compression-arg"
OPT_RECOMPRESS = "recompress"
OPT_LINKSAME = "linksame"
OPT_COALESCE = "coalesce"
OPT_RSIZE = "rsize"
OPT_PROP_INCLUDE = "prop-include"
OPT_PROP_EXCLUDE = "prop-exclude"

VAL_NONE = "none"
VAL_TRUE = "true"
VAL_LZMA = "lzma"
VAL_XZ = "xz"

OptionValue = Union[str, list]


@dataclass(eq=False)
class Archive:
    """The state of one archive: options, file tree, heap and lookup tables."""

    options: dict[str, OptionValue] = field(default_factory=dict)
    files: list[XarFile] = field(default_factory=list)
    toc: XarFile = field(default_factory=XarFile)
    signatures: list = field(default_factory=list)
    heap: BinaryIO = field(default_factory=io.BytesIO)
    heap_offset: int = 0
    heap_len: int = 0
    stream: Optional[BinaryIO] = None
    csum_hash: dict[str, XarFile] = field(default_factory=dict)
    link_hash: dict[str, XarFile] = field(default_factory=dict)

    def _values(self, key: str) -> list[str]:
        value = self.options.get(key)
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)

    def option(self, key: str) -> Optional[str]:
        """Return the (first) value of an option, or None if it is unset."""
        values = self._values(key)
        return values[0] if values else None

    def check_prop(self, name: str) -> bool:
        """Tell whether the property ``name`` should be recorded.

        An explicit include wins; an explicit exclude suppresses it; when
        any include is configured, everything not included is suppressed.
        """
        includes = self._values(OPT_PROP_INCLUDE)
        if name in includes:
            return True
        if name in self._values(OPT_PROP_EXCLUDE):
            return False
        return not includes


class DataModule:
    """A stage that sees the data of one property of one file.

    The default implementation passes data through untouched.
    """

    def __init__(self, archive: Archive, file: Optional[XarFile], prop: Optional[Prop]):
        self.archive = archive
        self.file = file
        self.prop = prop

    def to_heap_in(self, data: bytes) -> bytes:
        """Handle a chunk read from the source before it enters the heap."""
        return data

    def to_heap_out(self, data: bytes) -> bytes:
        """Observe a chunk as it will be written to the heap."""
        return data

    def to_heap_done(self) -> None:
        """Finish after all data has been written to the heap."""

    def from_heap_in(self, data: bytes) -> bytes:
        """Handle a chunk read from the heap."""
        return data

    def from_heap_out(self, data: bytes) -> bytes:
        """Observe a chunk as it will be handed to the writer."""
        return data

    def from_heap_done(self) -> None:
        """Finish after all data has been read from the heap."""