import hashlib

import pytest

from xarkit.datamod import OPT_FILE_CHECKSUM, Archive
from xarkit.hash import ChecksumMismatchError, HashModule, format_hash
from xarkit.tree import XarError, XarFile


def _setup(option="sha1"):
    options = {OPT_FILE_CHECKSUM: option} if option is not None else {}
    archive = Archive(options=options)
    entry = XarFile()
    data = entry.set("data", None)
    return archive, entry, data


def _archive_through(module, chunks):
    for chunk in chunks:
        module.to_heap_out(module.to_heap_in(chunk))
    module.to_heap_done()


def test_format_hash_hex():
    assert format_hash(b"\x00\xff\x10") == "00ff10"


def test_known_sha1_of_abc():
    archive, entry, data = _setup()
    _archive_through(HashModule(archive, entry, data), [b"abc"])
    assert entry.get("data/extracted-checksum") == "a9993e364706816aba3e25717850c26c9cd0d89d"
    assert entry.get_attr("data/extracted-checksum", "style") == "sha1"


def test_chunks_hash_like_whole():
    archive, entry, data = _setup("sha256")
    _archive_through(HashModule(archive, entry, data), [b"hello ", b"world"])
    expected = hashlib.sha256(b"hello world").hexdigest()
    assert entry.get("data/archived-checksum") == expected
    assert entry.get("data/extracted-checksum") == expected
    assert entry.get_attr("data/archived-checksum", "style") == "sha256"


def test_style_attribute_overrides_option():
    archive, entry, data = _setup("sha1")
    checksum = entry.set("extracted-checksum", "", parent=data)
    checksum.set_attr("style", "md5")
    _archive_through(HashModule(archive, entry, data), [b"abc"])
    assert entry.get("data/extracted-checksum") == hashlib.md5(b"abc").hexdigest()
    assert entry.get("data/archived-checksum") == hashlib.sha1(b"abc").hexdigest()


def test_no_option_records_nothing():
    archive, entry, data = _setup(None)
    _archive_through(HashModule(archive, entry, data), [b"abc"])
    assert entry.find_prop("data/extracted-checksum") is None


def test_none_option_records_nothing():
    archive, entry, data = _setup("none")
    _archive_through(HashModule(archive, entry, data), [b"abc"])
    assert entry.find_prop("data/archived-checksum") is None


def test_empty_stream_records_nothing():
    archive, entry, data = _setup()
    _archive_through(HashModule(archive, entry, data), [b""])
    assert list(entry.prop_paths()) == ["data"]


def test_unknown_digest_raises():
    archive, entry, data = _setup("no-such-digest")
    module = HashModule(archive, entry, data)
    with pytest.raises(XarError):
        module.to_heap_in(b"abc")


def test_extraction_verifies_matching_checksum():
    archive, entry, data = _setup()
    _archive_through(HashModule(archive, entry, data), [b"payload"])
    reader = HashModule(archive, entry, data)
    out = reader.from_heap_out(reader.from_heap_in(b"payload"))
    reader.from_heap_done()
    assert out == b"payload"
    assert entry.get("data/archived-checksum") == hashlib.sha1(b"payload").hexdigest()


def test_extraction_detects_mismatch():
    archive, entry, data = _setup()
    _archive_through(HashModule(archive, entry, data), [b"payload"])
    reader = HashModule(archive, entry, data)
    reader.from_heap_in(b"tampered")
    with pytest.raises(ChecksumMismatchError) as info:
        reader.from_heap_done()
    assert info.value.file is entry


def test_extraction_without_recorded_checksum_passes():
    archive, entry, data = _setup()
    reader = HashModule(archive, entry, data)
    assert reader.from_heap_in(b"anything") == b"anything"
    reader.from_heap_done()
    assert entry.find_prop("data/archived-checksum") is None


def test_module_can_be_reused_after_done():
    archive, entry, data = _setup()
    module = HashModule(archive, entry, data)
    _archive_through(module, [b"one"])
    _archive_through(module, [b"two"])
    assert entry.get("data/extracted-checksum") == hashlib.sha1(b"two").hexdigest()