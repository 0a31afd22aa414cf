"""AppleSingle / AppleDouble file structures.

An AppleSingle file is a header, a table of entry descriptors and the data
blocks they point at.  AppleDouble is the same without the data fork and
with a different magic number.  All fields are big-endian.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union

APPLESINGLE_MAGIC = 0x00051600
APPLEDOUBLE_MAGIC = 0x00051607
APPLESINGLE_VERSION = 0x00020000
APPLEDOUBLE_VERSION = 0x00020000

#: Default for a date that is not known, in seconds relative to 2000-01-01 GMT.
MAC_TIME_UNKNOWN = 0x80000000

_HEADER = struct.Struct(">II16sH")
_ENTRY = struct.Struct(">III")
_TIMES = struct.Struct(">IIII")

ASH_SIZE = _HEADER.size
ENTRY_SIZE = _ENTRY.size
MAC_TIMES_SIZE = _TIMES.size


class EntryId(IntEnum):
    """Kinds of entry in an AppleSingle file."""

    DATA = 1
    RESOURCE = 2
    NAME = 3
    COMMENT = 4
    BWICON = 5
    COLORICON = 6
    DATES = 8
    FINDER = 9
    MAC = 10
    PRODOS = 11
    MSDOS = 12
    SHORTNAME = 13
    AFPINFO = 14
    AFPDIR = 15


def _need(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")


@dataclass
class AppleSingleHeader:
    """The fixed header at the start of an AppleSingle or AppleDouble file."""

    magic: int = APPLESINGLE_MAGIC
    version: int = APPLESINGLE_VERSION
    filler: bytes = field(default=bytes(16))
    entries: int = 0

    def __post_init__(self) -> None:
        if len(self.filler) != 16:
            raise ValueError("filler must be exactly 16 bytes")

    def pack(self) -> bytes:
        """Encode the header as its on-disk bytes."""
        return _HEADER.pack(self.magic, self.version, self.filler, self.entries)

    @classmethod
    def unpack(cls, data: bytes) -> "AppleSingleHeader":
        """Decode a header from the start of ``data``."""
        _need(data, _HEADER.size, "AppleSingle header")
        magic, version, filler, entries = _HEADER.unpack_from(data)
        return cls(magic, version, filler, entries)

    @property
    def is_appledouble(self) -> bool:
        """Tell whether the magic number is the AppleDouble one."""
        return self.magic == APPLEDOUBLE_MAGIC


@dataclass
class AppleSingleEntry:
    """An entry descriptor: what the entry is, and where its data lies."""

    entry_id: Union[EntryId, int]
    offset: int = 0
    length: int = 0

    def pack(self) -> bytes:
        """Encode the descriptor as its on-disk bytes."""
        return _ENTRY.pack(int(self.entry_id), self.offset, self.length)

    @classmethod
    def unpack(cls, data: bytes) -> "AppleSingleEntry":
        """Decode a descriptor from the start of ``data``."""
        _need(data, _ENTRY.size, "AppleSingle entry")
        entry_id, offset, length = _ENTRY.unpack_from(data)
        try:
            entry_id = EntryId(entry_id)
        except ValueError:
            pass
        return cls(entry_id, offset, length)


@dataclass
class MacTimes:
    """File dates, each in seconds before or after 2000-01-01 GMT."""

    creation: int = MAC_TIME_UNKNOWN
    modification: int = MAC_TIME_UNKNOWN
    backup: int = MAC_TIME_UNKNOWN
    access: int = MAC_TIME_UNKNOWN

    def pack(self) -> bytes:
        """Encode the dates as their on-disk bytes."""
        return _TIMES.pack(self.creation, self.modification, self.backup, self.access)

    @classmethod
    def unpack(cls, data: bytes) -> "MacTimes":
        """Decode the dates from the start of ``data``."""
        _need(data, _TIMES.size, "file dates entry")
        return cls(*_TIMES.unpack_from(data))