"""Render a file mode as the ``ls -l`` style permission string."""

from __future__ import annotations

import stat

_S_IFWHT = 0o160000

_TYPE_CHARS = {
    stat.S_IFDIR: "d",
    stat.S_IFCHR: "c",
    stat.S_IFBLK: "b",
    stat.S_IFREG: "-",
    stat.S_IFLNK: "l",
    stat.S_IFSOCK: "s",
    stat.S_IFIFO: "p",
    _S_IFWHT: "w",
}


def _triple(mode: int, read: int, write: int, execute: int, special: int, marks: str) -> str:
    """Render one rwx group; ``marks`` gives the special char without/with execute."""
    chars = "r" if mode & read else "-"
    chars += "w" if mode & write else "-"
    has_exec = bool(mode & execute)
    if mode & special:
        chars += marks[1] if has_exec else marks[0]
    else:
        chars += "x" if has_exec else "-"
    return chars


def strmode(mode: int) -> str:
    """Return an 11-character string such as ``"drwxr-xr-x "``.

    The trailing space is the slot reserved for an ACL marker.
    """
    kind = _TYPE_CHARS.get(mode & 0o170000, "?")
    user = _triple(mode, stat.S_IRUSR, stat.S_IWUSR, stat.S_IXUSR, stat.S_ISUID, "Ss")
    group = _triple(mode, stat.S_IRGRP, stat.S_IWGRP, stat.S_IXGRP, stat.S_ISGID, "Ss")
    other = _triple(mode, stat.S_IROTH, stat.S_IWOTH, stat.S_IXOTH, stat.S_ISVTX, "Tt")
    return f"{kind}{user}{group}{other} "