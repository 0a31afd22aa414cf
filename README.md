# xarkit

A pure-Python library for the table of contents and the heap of xar
archives. It has no runtime dependencies beyond the standard library.

## Modules

- `xarkit.tree` holds the in-memory table of contents.
  - `XarFile` is a `<file>` entry. `Prop` is a property and `Attr` is an attribute.
  - Properties are reached by slash-separated paths such as `"data/offset"`, through `XarFile.get`, `set`, `create`, `unset`, `find_prop`, `get_attr`, `set_attr`, `attr_names`, `prop_paths` and `replicate`.
  - `find_file` finds a file by its path of `name` values. `walk_files` yields `(path, file)` pairs, parents first.
  - `XarError` is the base exception.
- `xarkit.xmlio` converts the tree to and from `xml.etree.ElementTree` elements.
  - `serialize_files` and `serialize_props` append elements to a parent.
  - `unserialize_file` and `unserialize_prop` build the tree from elements.
  - A `name` value that is not ISO-8859-1 is written base64-encoded with `enctype="base64"`, and decoded again on reading.
  - `unserialize_file` can record the originals of hardlink sets in a mapping passed as `links`.
- `xarkit.strmode`: `strmode(mode)` renders a mode as an `ls -l` style string, for example `"-rwxr-xr-x "`.
- `xarkit.datamod` holds the archive state and the data-module base class.
  - `Archive` holds the options, files, top-level `toc` entry, signatures, heap stream and checksum/link tables.
  - `DataModule` is the base class for the filters that data passes through on its way into the heap (`to_heap_in`, `to_heap_out`, `to_heap_done`) and out of it (`from_heap_in`, `from_heap_out`, `from_heap_done`).
- `xarkit.hash`: `HashModule` computes the `extracted-checksum` and `archived-checksum` properties on the way in. On the way out it checks the archived checksum and raises `ChecksumMismatchError` on a mismatch. `format_hash` renders a digest as hex.
- `xarkit.script`: `ScriptModule` records `contents/type = script` and `contents/interpreter` when the data starts with a `#!` line. `shebang_interpreter` extracts the interpreter path.
- `xarkit.lzmaxar`: `LzmaModule` compresses heap data when the `compression` option is `lzma` or `xz`. It decompresses data whose `encoding` style is `application/x-lzma` or `application/x-xz`. `is_xz_compressed` detects the XZ magic, and `CompressionError` reports failures.
- `xarkit.appledouble`: `AppleSingleHeader`, `AppleSingleEntry` and `MacTimes` have `pack`/`unpack` for the big-endian AppleSingle/AppleDouble structures. `EntryId` lists the entry kinds.
- `xarkit.signature`: `Signature` holds a signature's type, its heap offset and length, and its X.509 certificates.
  - `create_signature` reserves heap space and stamps `signature-creation-time`.
  - `Signature.copy_signed_data` reads the signed TOC checksum and the signature bytes from the heap.
  - `serialize_signatures` and `unserialize_signature` handle the XML form.
- `xarkit.io` moves property data between callers and the heap.
  - `copy_to_heap` stores the data and fills in `size`, `offset`, `length` and `encoding`.
  - `copy_from_heap` reads the data back out, and `HeapStream` does the same as a readable stream.
  - `copy_heap_to_heap` copies raw heap bytes from one archive to another. `heap_to_archive` copies the heap to `Archive.stream`.
  - `buffer_size` and `prevent_recompress` are also provided.

## Options

`Archive.options` maps option names to a string or a list of strings. The
modules read these keys:

| Option | Effect |
| --- | --- |
| `file-chksum` | Digest name for checksums (for example `sha1`). `none` turns checksums off. |
| `compression` | `lzma` or `xz` to compress data going into the heap. |
| `compression-arg` | Preset level 0 to 9. The default is 7. |
| `recompress` | `true` to compress data that is already XZ-compressed. |
| `linksame` | Turns a file whose data matches an earlier file into a hardlink to it. |
| `coalesce` | Reuses the heap offset of identical data. |
| `rsize` | Chunk size for heap I/O. The default is 32768 and the minimum is 4096. |
| `prop-include` / `prop-exclude` | Controls which properties (`contents`, …) are recorded. |

## Examples

Building a tree:

```python
from xarkit.tree import XarFile, find_file

root = XarFile()
root.set("name", "docs")
readme = XarFile(parent=root)
readme.set("name", "README")
readme.set("data/encoding", None)
readme.set_attr("data/encoding", "style", "application/octet-stream")

assert find_file([root], "docs/README") is readme
assert readme.get_attr("data/encoding", "style") == "application/octet-stream"
```

Storing data in the heap and reading it back:

```python
from xarkit.datamod import Archive
from xarkit.io import copy_from_heap, copy_to_heap
from xarkit.tree import XarFile

archive = Archive(options={"file-chksum": "sha1", "compression": "xz"})
entry = XarFile()
entry.set("name", "hello.txt")
data = entry.set("data", None)

copy_to_heap(archive, entry, data, [b"hello world\n"])
print(entry.get("data/encoding"), entry.get_attr("data/encoding", "style"))
# None application/x-xz

out = []
copy_from_heap(archive, entry, data, out.append)
assert b"".join(out) == b"hello world\n"
```

Rendering a mode string:

```python
from xarkit.strmode import strmode

print(strmode(0o100755))   # "-rwxr-xr-x "
```

## What it does not do

- The package has no command-line tool.
- It does not read or write whole `.xar` files. There is no archive header, no compressed TOC, and nothing that walks a directory to build an archive or extracts files onto disk.
- The data-module chain covers only checksums, `#!` script detection and LZMA/XZ compression. There is no gzip or bzip2 encoding, no Mach-O inspection and no extended-attribute capture.
- Signatures only reserve heap space and carry certificates. The signer callback is stored but never called, and nothing is signed or verified cryptographically.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```