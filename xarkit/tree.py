"""In-memory table-of-contents tree: files, properties and attributes.

A file holds properties; a property has a key, an optional value,
child properties and attributes; files also carry attributes of their own
(such as ``id``).  Property keys may be addressed by slash-separated paths
such as ``"data/encoding"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Union


class XarError(Exception):
    """Raised when an operation on the archive tree cannot be carried out."""


@dataclass(eq=False)
class Attr:
    """An attribute such as ``style="sha1"`` on a property or file."""

    key: str
    value: Optional[str]
    ns: Optional[str] = None


def _attr_lookup(attrs: list[Attr], key: str) -> Optional[str]:
    for attr in attrs:
        if attr.key == key:
            return attr.value
    return None


def _attr_store(attrs: list[Attr], key: str, value: Optional[str]) -> None:
    for attr in attrs:
        if attr.key == key:
            attr.value = value
            return
    # New attributes go to the front of the list.
    attrs.insert(0, Attr(key, value))


def _find_in(props: Iterable["Prop"], path: str) -> Optional["Prop"]:
    head, sep, rest = path.partition("/")
    for prop in props:
        if prop.key is not None and prop.key == head:
            if not sep:
                return prop
            return _find_in(prop.children, rest)
    return None


@dataclass(eq=False)
class Prop:
    """A property node: ``<key attr="...">value</key>``."""

    key: Optional[str] = None
    value: Optional[str] = None
    parent: Optional["Prop"] = field(default=None, repr=False)
    file: Optional["XarFile"] = field(default=None, repr=False)
    children: list["Prop"] = field(default_factory=list, repr=False)
    attrs: list[Attr] = field(default_factory=list)
    prefix: Optional[str] = None
    ns: Optional[str] = None

    def find(self, path: str) -> Optional["Prop"]:
        """Find a descendant by a slash-separated path relative to this property."""
        return _find_in(self.children, path)

    def child(self, key: str) -> Optional["Prop"]:
        """Return the first direct child with the given key, or None."""
        for prop in self.children:
            if prop.key == key:
                return prop
        return None

    def get_attr(self, key: str) -> Optional[str]:
        """Return the value of an attribute of this property, or None."""
        return _attr_lookup(self.attrs, key)

    def set_attr(self, key: str, value: Optional[str]) -> None:
        """Set an attribute on this property, replacing any existing value."""
        _attr_store(self.attrs, key, value)


PropRef = Union[None, str, Prop]


@dataclass(eq=False)
class XarFile:
    """A ``<file>`` entry: a container of properties and attributes."""

    parent: Optional["XarFile"] = field(default=None, repr=False)
    props: list[Prop] = field(default_factory=list, repr=False)
    attrs: list[Attr] = field(default_factory=list)
    children: list["XarFile"] = field(default_factory=list, repr=False)
    prefix: Optional[str] = None
    ns: Optional[str] = None
    fspath: Optional[str] = None
    parent_extracted: bool = False
    eas: list = field(default_factory=list, repr=False)
    next_ea_id: int = 0

    def __post_init__(self) -> None:
        if self.parent is not None:
            self.parent.children.append(self)

    # -- properties -------------------------------------------------------

    def new_prop(self, parent: Optional[Prop] = None) -> Prop:
        """Create an empty property at the front of the parent's (or file's) list."""
        prop = Prop(parent=parent, file=self, prefix=self.prefix)
        siblings = parent.children if parent is not None else self.props
        siblings.insert(0, prop)
        return prop

    def find_prop(self, key: str) -> Optional[Prop]:
        """Find a property by slash-separated path from the file's top level."""
        return _find_in(self.props, key)

    def get(self, key: str) -> Optional[str]:
        """Return the value of the property at ``key``, or None if absent."""
        prop = self.find_prop(key)
        return prop.value if prop is not None else None

    def _set(
        self, parent: Optional[Prop], key: str, value: Optional[str], overwrite: bool
    ) -> Prop:
        head, sep, rest = key.partition("/")
        siblings = parent.children if parent is not None else self.props
        for prop in siblings:
            if prop.key is not None and prop.key == head:
                if sep:
                    return self._set(prop, rest, value, overwrite)
                if overwrite:
                    prop.value = value
                    return prop
                created = self.new_prop(parent)
                created.key = head
                created.value = value
                return created
        created = self.new_prop(parent)
        created.key = head
        if not sep:
            created.value = value
            return created
        return self._set(created, rest, value, overwrite)

    def set(self, key: str, value: Optional[str], parent: Optional[Prop] = None) -> Prop:
        """Set a property's value, creating intermediate nodes as needed."""
        return self._set(parent, key, value, True)

    def create(
        self, key: str, value: Optional[str], parent: Optional[Prop] = None
    ) -> Prop:
        """Like :meth:`set`, but adds a new leaf even if one with the key exists."""
        return self._set(parent, key, value, False)

    def unset(self, key: str) -> None:
        """Remove the property at ``key`` (and its subtree) if present."""
        self.remove_prop(self.find_prop(key))

    def remove_prop(self, prop: Optional[Prop]) -> None:
        """Detach ``prop`` from its parent or from the file."""
        if prop is None:
            return
        siblings = prop.parent.children if prop.parent is not None else self.props
        for index, candidate in enumerate(siblings):
            if candidate is prop:
                del siblings[index]
                return

    # -- attributes -------------------------------------------------------

    def _resolve(self, prop: PropRef) -> Optional[Prop]:
        if isinstance(prop, str):
            return self.find_prop(prop)
        return prop

    def get_attr(self, prop: PropRef, key: str) -> Optional[str]:
        """Return an attribute of the file (``prop`` None) or of a property."""
        if prop is None:
            return _attr_lookup(self.attrs, key)
        target = self._resolve(prop)
        if target is None:
            return None
        return target.get_attr(key)

    def set_attr(self, prop: PropRef, key: str, value: Optional[str]) -> None:
        """Set an attribute on the file (``prop`` None) or on a property."""
        if prop is None:
            _attr_store(self.attrs, key, value)
            return
        target = self._resolve(prop)
        if target is None:
            raise XarError(f"no such property: {prop!r}")
        target.set_attr(key, value)

    def attr_names(self, prop: PropRef = None) -> list[str]:
        """List attribute keys of the file or of a property, in stored order."""
        if prop is None:
            return [a.key for a in self.attrs]
        target = self._resolve(prop)
        if target is None:
            return []
        return [a.key for a in target.attrs]

    # -- traversal and copying -------------------------------------------

    def prop_paths(self) -> Iterator[str]:
        """Yield flattened paths of all properties, depth first."""

        def walk(props: list[Prop], prefix: Optional[str]) -> Iterator[str]:
            for prop in props:
                key = prop.key if prop.key is not None else ""
                path = f"{prefix}/{key}" if prefix else key
                yield path
                yield from walk(prop.children, path)

        return walk(self.props, None)

    def replicate(self, newparent: Optional["XarFile"] = None) -> "XarFile":
        """Copy this file's attributes (except ``id``) and properties."""
        copy = XarFile(parent=newparent)
        for attr in self.attrs:
            if attr.key == "id":
                continue
            copy.set_attr(None, attr.key, attr.value)

        def clone(props: list[Prop], parent: Optional[Prop]) -> list[Prop]:
            cloned = []
            for prop in props:
                new = Prop(
                    key=prop.key,
                    value=prop.value,
                    parent=parent,
                    file=copy,
                    attrs=[Attr(a.key, a.value, a.ns) for a in prop.attrs],
                    prefix=copy.prefix,
                )
                new.children = clone(prop.children, new)
                cloned.append(new)
            return cloned

        copy.props = clone(self.props, None)
        return copy


def find_file(files: Iterable[XarFile], path: str) -> Optional[XarFile]:
    """Find a file by slash-separated path of ``name`` properties."""
    head, sep, rest = path.partition("/")
    for candidate in files:
        name = candidate.get("name")
        if name is None:
            continue
        if name == head:
            if not sep:
                return candidate
            return find_file(candidate.children, rest)
    return None


def walk_files(files: Iterable[XarFile]) -> Iterator[tuple[str, XarFile]]:
    """Yield ``(path, file)`` for every file, parents before children."""

    def walk(level: Iterable[XarFile], prefix: Optional[str]) -> Iterator[tuple[str, XarFile]]:
        for entry in level:
            name = entry.get("name") or ""
            path = f"{prefix}/{name}" if prefix else name
            yield path, entry
            yield from walk(entry.children, path)

    return walk(files, None)