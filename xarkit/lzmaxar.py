"""LZMA / XZ compression module for heap data.

When the ``compression`` option is ``lzma`` (the legacy "alone" format) or
``xz``, data going into the heap is compressed and the property's
``encoding`` gets the matching ``style``.  Data coming out of the heap is
decompressed when its ``encoding`` style names one of those formats.
"""

from __future__ import annotations

import lzma
from typing import Optional

from .datamod import (
    OPT_COMPRESSION,
    OPT_COMPRESSION_ARG,
    OPT_RECOMPRESS,
    VAL_LZMA,
    VAL_TRUE,
    VAL_XZ,
    Archive,
    DataModule,
)
from .tree import Prop, XarError, XarFile

STYLE_LZMA = "application/x-lzma"
STYLE_XZ = "application/x-xz"

PRESET_LEVEL = 7
MEMORY_LIMIT = 400 * 1024 * 1024

_XZ_MAGIC = b"\xfd7zXZ\x00"


class CompressionError(XarError):
    """Raised when data cannot be compressed or decompressed."""

    def __init__(self, message: str, file: Optional[XarFile] = None):
        super().__init__(message)
        self.file = file


def is_xz_compressed(data: bytes) -> bool:
    """Tell whether ``data`` starts with the XZ stream magic."""
    return len(data) >= len(_XZ_MAGIC) and data[: len(_XZ_MAGIC)] == _XZ_MAGIC


class LzmaModule(DataModule):
    """Compresses data into the heap and decompresses it back out."""

    def __init__(self, archive: Archive, file: Optional[XarFile], prop: Optional[Prop]):
        super().__init__(archive, file, prop)
        self._reset_encoder()
        self._reset_decoder()

    def _reset_encoder(self) -> None:
        self._encoder_ready = False
        self._compressor = None
        self._alone = False
        self._flushed = False

    def _reset_decoder(self) -> None:
        self._decoder_ready = False
        self._decompressor = None

    # -- into the heap ----------------------------------------------------

    def _prevent_recompress(self, data: bytes) -> bool:
        if self.archive.option(OPT_RECOMPRESS) == VAL_TRUE:
            return False
        return is_xz_compressed(data)

    def _level(self) -> int:
        level = PRESET_LEVEL
        arg = self.archive.option(OPT_COMPRESSION_ARG)
        if arg is not None:
            try:
                requested = int(arg, 10)
            except ValueError:
                return level
            if 0 <= requested <= 9:
                level = requested
        return level

    def _start_encoder(self, data: bytes) -> bool:
        self._encoder_ready = True
        choice = self.archive.option(OPT_COMPRESSION)
        if choice == VAL_LZMA:
            alone = True
        elif choice == VAL_XZ:
            alone = False
        else:
            return False
        if self._prevent_recompress(data):
            return False
        level = self._level()
        try:
            if alone:
                self._compressor = lzma.LZMACompressor(
                    format=lzma.FORMAT_ALONE, preset=level
                )
            else:
                self._compressor = lzma.LZMACompressor(
                    format=lzma.FORMAT_XZ, check=lzma.CHECK_CRC64, preset=level
                )
        except lzma.LZMAError as exc:
            raise CompressionError("Error compressing file", self.file) from exc
        self._alone = alone
        return True

    def to_heap_in(self, data: bytes) -> bytes:
        """Compress a chunk; an empty chunk marks the end and flushes the stream."""
        if not self._encoder_ready:
            if not self._start_encoder(data):
                return data
            if not data:
                return data
        elif self._compressor is None:
            return data

        try:
            if data:
                return self._compressor.compress(data)
            if self._flushed:
                return b""
            self._flushed = True
            return self._compressor.flush()
        except lzma.LZMAError as exc:
            raise CompressionError("Error compressing file", self.file) from exc

    def to_heap_done(self) -> None:
        """Record the encoding style when the data was compressed."""
        try:
            if self._compressor is not None and self.file is not None:
                encoding = self.file.set("encoding", None, parent=self.prop)
                encoding.set_attr("style", STYLE_LZMA if self._alone else STYLE_XZ)
        finally:
            self._reset_encoder()

    # -- out of the heap --------------------------------------------------

    def _encoding_style(self) -> Optional[str]:
        if self.prop is None:
            return None
        encoding = self.prop.child("encoding")
        if encoding is None:
            return None
        return encoding.get_attr("style")

    def from_heap_in(self, data: bytes) -> bytes:
        """Decompress a chunk read from the heap, if the data is LZMA or XZ."""
        if not self._decoder_ready:
            self._decoder_ready = True
            if self._encoding_style() not in (STYLE_LZMA, STYLE_XZ):
                return data
            try:
                self._decompressor = lzma.LZMADecompressor(
                    format=lzma.FORMAT_AUTO, memlimit=MEMORY_LIMIT
                )
            except lzma.LZMAError as exc:
                raise CompressionError("Error decompressing file", self.file) from exc
        elif self._decompressor is None:
            return data

        if not data or self._decompressor.eof:
            return b""
        try:
            return self._decompressor.decompress(data)
        except (lzma.LZMAError, EOFError) as exc:
            raise CompressionError("Error decompressing file", self.file) from exc

    def from_heap_done(self) -> None:
        """Release the decompressor."""
        self._reset_decoder()