"""Moving property data into and out of the archive heap.

Data stored for a property (a file's contents, an extended attribute, and
so on) goes through the chain of data modules: checksums, script
detection and compression. It then lands in the heap. The property gets
``size``, ``offset``, ``length`` and ``encoding`` children that describe
where the data lies and how it is stored. Reading runs the same chain the
other way round.
"""

from __future__ import annotations

import logging
import string
from typing import BinaryIO, Callable, Iterable, Optional

from .datamod import (
    OPT_COALESCE,
    OPT_LINKSAME,
    OPT_RECOMPRESS,
    OPT_RSIZE,
    VAL_TRUE,
    Archive,
    DataModule,
)
from .hash import ARCHIVED_CHECKSUM, HashModule
from .lzmaxar import LzmaModule, is_xz_compressed
from .script import ScriptModule
from .tree import Prop, XarError, XarFile

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 32768
MINIMUM_BUFFER_SIZE = 4096
DEFAULT_ENCODING_STYLE = "application/octet-stream"

_INT64_MAX = 2**63 - 1
_INT64_MIN = -(2**63)
_DIGITS = {8: string.octdigits, 10: string.digits, 16: string.hexdigits}

WriteCallback = Callable[[bytes], object]


def _strtol(text: str, base: int) -> int:
    """Parse a leading integer as C's ``strtol`` does; no digits gives 0."""
    s = text.lstrip(" \t\n\r\f\v")
    sign = 1
    if s[:1] in ("+", "-"):
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if base == 0:
        if s[:2].lower() == "0x" and s[2:3] and s[2] in string.hexdigits:
            base, s = 16, s[2:]
        elif s.startswith("0"):
            base = 8
        else:
            base = 10
    elif base == 16 and s[:2].lower() == "0x":
        s = s[2:]
    allowed = _DIGITS[base]
    end = 0
    while end < len(s) and s[end] in allowed:
        end += 1
    return sign * int(s[:end], base) if end else 0


def _checked_int(text: str, base: int, what: str) -> int:
    value = _strtol(text, base)
    if value > _INT64_MAX or value < _INT64_MIN:
        raise XarError(f"{what} out of range: {text!r}")
    return value


def buffer_size(archive: Archive) -> int:
    """Return the chunk size for heap I/O, from the ``rsize`` option."""
    opt = archive.option(OPT_RSIZE)
    if opt is None:
        return DEFAULT_BUFFER_SIZE
    size = _strtol(opt, 0)
    if size > _INT64_MAX or size < _INT64_MIN:
        size = DEFAULT_BUFFER_SIZE
    return max(size, MINIMUM_BUFFER_SIZE)


def _offset(prop: Prop) -> int:
    node = prop.child("offset")
    text = node.value if node is not None else None
    if text is None:
        raise XarError(f"property {prop.key!r} has no offset")
    value = _checked_int(text, 0, "offset")
    if value < 0:
        raise XarError(f"negative offset: {text!r}")
    return value


def _length(prop: Prop) -> int:
    node = prop.child("length")
    text = node.value if node is not None else None
    if text is None:
        return 0
    value = _checked_int(text, 10, "length")
    if value < 0:
        raise XarError(f"negative length: {text!r}")
    return value


def _modules(archive: Archive, file: Optional[XarFile], prop: Optional[Prop]) -> list[DataModule]:
    return [
        HashModule(archive, file, prop),
        ScriptModule(archive, file, prop),
        LzmaModule(archive, file, prop),
    ]


def _read(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    return data or b""


def _write_all(stream: BinaryIO, data: bytes) -> int:
    view = memoryview(data)
    written = 0
    while written < len(view):
        count = stream.write(view[written:])
        if not count:
            raise XarError("Unable to write to heap")
        written += count
    return written


def _seek_heap(archive: Archive, offset: int) -> None:
    """Position the heap for reading at ``offset``, skipping forward if unseekable."""
    heap = archive.heap
    if heap.seekable():
        try:
            heap.seek(offset)
        except (OSError, ValueError) as exc:
            raise XarError("Unable to seek") from exc
        return
    skip = offset - archive.heap_offset
    if skip < 0:
        raise XarError("Unable to seek")
    while skip > 0:
        chunk = _read(heap, min(skip, DEFAULT_BUFFER_SIZE))
        if not chunk:
            raise XarError("Unable to seek")
        archive.heap_offset += len(chunk)
        skip -= len(chunk)


def _rewind_heap(archive: Archive, count: int) -> None:
    heap = archive.heap
    heap.seek(heap.tell() - count)
    heap.truncate()


def copy_to_heap(
    archive: Archive, file: XarFile, prop: Prop, chunks: Iterable[bytes]
) -> None:
    """Store the data in ``chunks`` as the content of ``prop`` in the heap."""
    modules = _modules(archive, file, prop)
    orig_heap_offset = archive.heap_offset
    readsize = 0
    writesize = 0

    def feed(chunk: bytes) -> None:
        nonlocal writesize
        data = bytes(chunk)
        for module in modules:
            data = module.to_heap_in(data)
        for module in modules:
            data = module.to_heap_out(data)
        if data:
            count = _write_all(archive.heap, data)
            writesize += count
            archive.heap_offset += count

    for chunk in chunks:
        readsize += len(chunk)
        feed(chunk)
    feed(b"")

    if readsize == 0:
        archive.heap_offset = orig_heap_offset
        _rewind_heap(archive, writesize)
        for module in modules:
            module.to_heap_done()
        return

    for module in modules:
        module.to_heap_done()

    archive.heap_len += writesize
    checksum = prop.child(ARCHIVED_CHECKSUM)
    csum = checksum.value if checksum is not None else None
    twin = archive.csum_hash.get(csum) if csum else None

    if twin is not None:
        if archive.option(OPT_LINKSAME) is not None and prop.key == "data":
            twin_id = twin.get_attr(None, "id")
            file.set("type", "hardlink").set_attr("link", twin_id)
            twin.set("type", "hardlink").set_attr("link", "original")
            file.remove_prop(file.find_prop("data"))
            archive.heap_offset = orig_heap_offset
            _rewind_heap(archive, writesize)
            archive.heap_len -= writesize
            return
        if archive.option(OPT_COALESCE) is not None:
            same = twin.find_prop(prop.key) if prop.key is not None else None
            offset_node = same.child("offset") if same is not None else None
            if offset_node is not None and offset_node.value is not None:
                archive.heap_offset = orig_heap_offset
                _rewind_heap(archive, writesize)
                orig_heap_offset = _strtol(offset_node.value, 10)
                archive.heap_len -= writesize
    elif csum:
        archive.csum_hash[csum] = file
    else:
        logger.warning("No archived-checksum")

    file.set("size", str(readsize), parent=prop)
    file.set("offset", str(orig_heap_offset), parent=prop)
    encoding = prop.child("encoding")
    if encoding is None:
        encoding = file.set("encoding", None, parent=prop)
    if not encoding.get_attr("style"):
        encoding.set_attr("style", DEFAULT_ENCODING_STYLE)
    file.set("length", str(writesize), parent=prop)


def copy_from_heap(
    archive: Archive, file: XarFile, prop: Prop, write: Optional[WriteCallback]
) -> None:
    """Read the content of ``prop`` out of the heap and hand it to ``write``.

    With ``write`` None the data is still read and checked but not delivered.
    """
    modules = _modules(archive, file, prop)
    bsize = buffer_size(archive)
    offset_node = prop.child("offset")
    if offset_node is None or offset_node.value is None:
        if write is not None:
            write(b"")
        return
    _seek_heap(archive, _offset(prop))

    fsize = _length(prop)
    if fsize == 0:
        return

    done = 0
    while done < fsize:
        chunk = _read(archive.heap, min(bsize, fsize - done))
        if not chunk:
            break
        archive.heap_offset += len(chunk)
        done += len(chunk)
        data = chunk
        for module in modules:
            data = module.from_heap_in(data)
        if write is not None:
            for module in modules:
                data = module.from_heap_out(data)
            write(data)

    for module in modules:
        module.from_heap_done()


def copy_heap_to_heap(
    source: Archive, fsource: XarFile, prop: Prop, dest: Archive, fdest: XarFile
) -> None:
    """Copy the raw heap bytes of ``prop`` from one archive's heap to another's.

    Only the ``offset`` of the matching property of ``fdest`` is updated;
    copying the other properties is left to the caller.
    """
    bsize = buffer_size(source)
    orig_heap_offset = dest.heap_offset
    _seek_heap(source, _offset(prop))

    fsize = _length(prop)
    if fsize == 0:
        return

    done = 0
    while done < fsize:
        chunk = _read(source.heap, min(bsize, fsize - done))
        if not chunk:
            break
        source.heap_offset += len(chunk)
        done += len(chunk)
        count = _write_all(dest.heap, chunk)
        dest.heap_offset += count
        dest.heap_len += count

    target = fdest.find_prop(prop.key) if prop.key is not None else None
    if target is not None:
        fdest.set("offset", str(orig_heap_offset), parent=target)


class HeapStream:
    """A readable stream over the decoded content of one property."""

    def __init__(self, archive: Archive, file: XarFile, prop: Prop):
        offset = _offset(prop)
        self.archive = archive
        self.file = file
        self.prop = prop
        self.total_in = 0
        self.total_out = 0
        self._bsize = buffer_size(archive)
        self._modules = _modules(archive, file, prop)
        _seek_heap(archive, offset)
        self._fsize = _length(prop)
        self._pending = bytearray()
        self._eof = self._fsize == 0
        self._closed = False

    @property
    def closed(self) -> bool:
        """Tell whether :meth:`close` has been called."""
        return self._closed

    def _fill(self) -> None:
        remaining = self._fsize - self.total_in
        if remaining <= 0:
            self._eof = True
            return
        chunk = _read(self.archive.heap, min(self._bsize, remaining))
        if not chunk:
            self._eof = True
            return
        self.archive.heap_offset += len(chunk)
        self.total_in += len(chunk)
        data = chunk
        for module in self._modules:
            data = module.from_heap_in(data)
        for module in self._modules:
            data = module.from_heap_out(data)
        self._pending += data

    def read(self, size: int = -1) -> bytes:
        """Return up to ``size`` decoded bytes (all if negative); b"" at the end."""
        if self._closed:
            raise ValueError("read from a closed heap stream")
        while not self._eof and (size < 0 or len(self._pending) < size):
            self._fill()
        if size < 0:
            out = bytes(self._pending)
            self._pending.clear()
        else:
            out = bytes(self._pending[:size])
            del self._pending[:size]
        self.total_out += len(out)
        return out

    def close(self) -> None:
        """Finish the modules, verifying the checksum; safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._pending.clear()
        for module in self._modules:
            module.from_heap_done()

    def __enter__(self) -> "HeapStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def heap_to_archive(archive: Archive) -> int:
    """Copy the whole heap to the archive's output stream; return the byte count."""
    if archive.stream is None:
        raise XarError("archive has no output stream")
    bsize = buffer_size(archive)
    heap = archive.heap
    if heap.seekable():
        heap.seek(0)
    total = 0
    while True:
        chunk = _read(heap, bsize)
        if not chunk:
            break
        total += _write_all(archive.stream, chunk)
    return total


def prevent_recompress(archive: Archive, data: bytes) -> bool:
    """Tell whether ``data`` is already compressed and should be left alone."""
    if archive.option(OPT_RECOMPRESS) == VAL_TRUE:
        return False
    return is_xz_compressed(data)