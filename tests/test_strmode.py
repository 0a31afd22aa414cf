import stat

import pytest

from xarkit.strmode import strmode


def test_regular_file():
    assert strmode(stat.S_IFREG | 0o644) == "-rw-r--r-- "


def test_directory():
    assert strmode(stat.S_IFDIR | 0o755) == "drwxr-xr-x "


def test_setuid_executable():
    assert strmode(stat.S_IFREG | stat.S_ISUID | 0o755) == "-rwsr-xr-x "


@pytest.mark.parametrize(
    "kind, char",
    [
        (stat.S_IFDIR, "d"),
        (stat.S_IFCHR, "c"),
        (stat.S_IFBLK, "b"),
        (stat.S_IFREG, "-"),
        (stat.S_IFLNK, "l"),
        (stat.S_IFSOCK, "s"),
        (stat.S_IFIFO, "p"),
        (0o160000, "w"),
    ],
)
def test_type_character(kind, char):
    result = strmode(kind | 0o777)
    assert result[0] == char
    assert len(result) == 11


def test_unknown_type():
    assert strmode(0o777)[0] == "?"


def test_setuid_without_execute_is_capital():
    assert strmode(stat.S_IFREG | stat.S_ISUID | 0o644)[3] == "S"


@pytest.mark.parametrize(
    "bits, char",
    [(0, "-"), (stat.S_IXGRP, "x"), (stat.S_ISGID, "S"), (stat.S_ISGID | stat.S_IXGRP, "s")],
)
def test_group_execute_slot(bits, char):
    assert strmode(stat.S_IFREG | bits)[6] == char


@pytest.mark.parametrize(
    "bits, char",
    [(0, "-"), (stat.S_IXOTH, "x"), (stat.S_ISVTX, "T"), (stat.S_ISVTX | stat.S_IXOTH, "t")],
)
def test_other_execute_slot(bits, char):
    assert strmode(stat.S_IFDIR | bits)[9] == char


def test_no_permissions_all_dashes_and_trailing_space():
    result = strmode(stat.S_IFREG)
    assert result[1:10] == "-" * 9
    assert result.endswith(" ")


def test_read_write_bits_map_to_positions():
    result = strmode(stat.S_IFREG | stat.S_IRUSR | stat.S_IWGRP | stat.S_IROTH)
    assert result[1] == "r"
    assert result[5] == "w"
    assert result[7] == "r"
    assert result[2] == "-"