"""Module that records the interpreter named on a script's ``#!`` line."""

from __future__ import annotations

from typing import Optional

from .datamod import Archive, DataModule
from .tree import Prop, XarFile

_INT_MAX = 2**31 - 1
_TERMINATORS = b"\0\n "


def shebang_interpreter(data: bytes) -> Optional[str]:
    """Return the interpreter path of a ``#!`` line, or None if there is none."""
    if len(data) <= 2 or not data.startswith(b"#!"):
        return None
    end = 2
    while end < len(data) and data[end] not in _TERMINATORS:
        end += 1
    return data[2:end].decode("utf-8", errors="surrogateescape")


class ScriptModule(DataModule):
    """Marks a file as a script when its first chunk begins with ``#!``."""

    def __init__(self, archive: Archive, file: Optional[XarFile], prop: Optional[Prop]):
        super().__init__(archive, file, prop)
        self._seen = False

    def to_heap_in(self, data: bytes) -> bytes:
        """Inspect the first chunk only; the data itself passes through."""
        if self._seen or not self.archive.check_prop("contents"):
            return data
        if len(data) > _INT_MAX:
            return data
        self._seen = True
        interpreter = shebang_interpreter(data)
        if interpreter is not None and self.file is not None:
            contents = self.file.set("contents", None, parent=self.prop)
            self.file.set("type", "script", parent=contents)
            self.file.set("interpreter", interpreter, parent=contents)
        return data

    def to_heap_done(self) -> None:
        """Forget what was seen, ready for another stream."""
        self._seen = False