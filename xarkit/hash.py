"""Checksum module: digests of data going into and coming out of the heap.

Two digests are kept per property: the *extracted* checksum over the data
as it is outside the archive, and the *archived* checksum over the bytes
as stored in the heap.  The algorithm comes from the ``style`` attribute
of an existing checksum property, or else from the ``file-chksum`` option.
"""

from __future__ import annotations

import hashlib
from typing import Optional

from .datamod import OPT_FILE_CHECKSUM, VAL_NONE, Archive, DataModule
from .tree import Prop, XarError, XarFile

EXTRACTED_CHECKSUM = "extracted-checksum"
ARCHIVED_CHECKSUM = "archived-checksum"


class ChecksumMismatchError(XarError):
    """Raised when data read from the heap does not match its recorded checksum."""

    def __init__(self, message: str, file: Optional[XarFile] = None):
        super().__init__(message)
        self.file = file


def format_hash(digest: bytes) -> str:
    """Render a digest as lower-case hexadecimal."""
    return digest.hex()


def _new_hasher(style: str):
    try:
        return hashlib.new(style)
    except (ValueError, TypeError) as exc:
        raise XarError(f"unknown digest: {style!r}") from exc


class HashModule(DataModule):
    """Computes and verifies extracted and archived checksums."""

    def __init__(self, archive: Archive, file: Optional[XarFile], prop: Optional[Prop]):
        super().__init__(archive, file, prop)
        self._reset()

    def _reset(self) -> None:
        self._unarchived = None
        self._archived = None
        self._count = 0

    def _style(self, key: str) -> Optional[str]:
        style = None
        if self.prop is not None:
            checksum = self.prop.child(key)
            if checksum is not None:
                style = checksum.get_attr("style")
        if not style:
            style = self.archive.option(OPT_FILE_CHECKSUM)
        if not style or style == VAL_NONE:
            return None
        return style

    def _feed_unarchived(self, data: bytes) -> bytes:
        style = self._style(EXTRACTED_CHECKSUM)
        if style is None:
            return data
        if self._unarchived is None:
            self._unarchived = _new_hasher(style)
        if data:
            self._count += len(data)
            self._unarchived.update(data)
        return data

    def _feed_archived(self, data: bytes) -> bytes:
        style = self._style(ARCHIVED_CHECKSUM)
        if style is None:
            return data
        if self._archived is None:
            self._archived = _new_hasher(style)
        if data:
            self._count += len(data)
            self._archived.update(data)
        return data

    def _record(self, key: str, hasher) -> None:
        if self.file is None:
            return
        checksum = self.file.set(key, format_hash(hasher.digest()), parent=self.prop)
        checksum.set_attr("style", hasher.name)

    def to_heap_in(self, data: bytes) -> bytes:
        """Digest the data as read from outside the archive."""
        return self._feed_unarchived(data)

    def to_heap_out(self, data: bytes) -> bytes:
        """Digest the data as it is stored in the heap."""
        return self._feed_archived(data)

    def to_heap_done(self) -> None:
        """Record both checksums as properties, unless no data went through."""
        try:
            if self._count == 0:
                return
            if self._unarchived is not None:
                self._record(EXTRACTED_CHECKSUM, self._unarchived)
            if self._archived is not None:
                self._record(ARCHIVED_CHECKSUM, self._archived)
        finally:
            self._reset()

    def from_heap_in(self, data: bytes) -> bytes:
        """Digest the data as read from the heap."""
        return self._feed_archived(data)

    def from_heap_out(self, data: bytes) -> bytes:
        """Digest the data as handed back out of the archive."""
        return self._feed_unarchived(data)

    def from_heap_done(self) -> None:
        """Check the archived checksum against the recorded one."""
        archived = self._archived
        self._reset()
        if archived is None:
            return
        checksum = self.prop.child(ARCHIVED_CHECKSUM) if self.prop is not None else None
        if checksum is None:
            return
        expected = checksum.value
        style = checksum.get_attr("style")
        if not expected or not style:
            return
        try:
            hashlib.new(style)
        except (ValueError, TypeError):
            return
        if format_hash(archived.digest()) != expected:
            raise ChecksumMismatchError(
                "archived-checksum message digest hash values do not match",
                self.file,
            )