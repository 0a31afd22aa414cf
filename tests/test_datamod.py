import pytest

from xarkit.datamod import (
    OPT_FILE_CHECKSUM,
    OPT_PROP_EXCLUDE,
    OPT_PROP_INCLUDE,
    Archive,
    DataModule,
)
from xarkit.tree import XarFile


def test_option_returns_string_value():
    archive = Archive(options={OPT_FILE_CHECKSUM: "sha1"})
    assert archive.option(OPT_FILE_CHECKSUM) == "sha1"


def test_option_missing_is_none():
    assert Archive().option(OPT_FILE_CHECKSUM) is None


def test_option_list_returns_first():
    archive = Archive(options={OPT_PROP_INCLUDE: ["contents", "data"]})
    assert archive.option(OPT_PROP_INCLUDE) == "contents"


def test_option_empty_list_is_none():
    archive = Archive(options={OPT_PROP_INCLUDE: []})
    assert archive.option(OPT_PROP_INCLUDE) is None


def test_check_prop_default_allows_everything():
    assert Archive().check_prop("contents") is True


def test_check_prop_exclude():
    archive = Archive(options={OPT_PROP_EXCLUDE: ["contents"]})
    assert archive.check_prop("contents") is False
    assert archive.check_prop("ea") is True


def test_check_prop_include_restricts_others():
    archive = Archive(options={OPT_PROP_INCLUDE: "ea"})
    assert archive.check_prop("ea") is True
    assert archive.check_prop("contents") is False


def test_check_prop_include_beats_exclude():
    archive = Archive(options={OPT_PROP_INCLUDE: ["ea"], OPT_PROP_EXCLUDE: ["ea"]})
    assert archive.check_prop("ea") is True


@pytest.mark.parametrize(
    "hook",
    ["to_heap_in", "to_heap_out", "from_heap_in", "from_heap_out"],
)
def test_base_module_passes_data_through(hook):
    module = DataModule(Archive(), XarFile(), None)
    assert getattr(module, hook)(b"payload") == b"payload"


def test_base_module_done_hooks_leave_file_untouched():
    entry = XarFile()
    module = DataModule(Archive(), entry, None)
    module.to_heap_done()
    module.from_heap_done()
    assert list(entry.prop_paths()) == []


def test_archive_instances_do_not_share_state():
    first, second = Archive(), Archive()
    first.files.append(XarFile())
    assert second.files == []