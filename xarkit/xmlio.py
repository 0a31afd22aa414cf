"""Conversion between the in-memory tree and table-of-contents XML elements.

Files are written as ``<file>`` elements carrying their attributes, then their
properties, then their child files.  A ``name`` property whose value cannot
be represented in ISO-8859-1 is written base64-encoded with
``enctype="base64"``.
"""

from __future__ import annotations

import base64
import binascii
import xml.etree.ElementTree as ET
from typing import Iterable, MutableMapping, Optional

from .tree import Attr, Prop, XarError, XarFile

_XML_BLANKS = " \t\r\n"


def _split_name(name: str) -> tuple[Optional[str], str]:
    """Split an element or attribute name into (prefix, local name)."""
    if name.startswith("{"):
        return None, name.partition("}")[2]
    prefix, sep, local = name.partition(":")
    if sep:
        return prefix, local
    return None, name


def _is_latin1(value: str) -> bool:
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def serialize_props(props: Iterable[Prop], parent: ET.Element) -> list[ET.Element]:
    """Append an element for each property (and its subtree) to ``parent``."""
    created = []
    for prop in props:
        if prop.key is None:
            raise XarError("cannot serialize a property without a key")
        tag = f"{prop.prefix}:{prop.key}" if prop.prefix else prop.key
        element = ET.SubElement(parent, tag)
        for attr in prop.attrs:
            name = f"{attr.ns}:{attr.key}" if attr.ns else attr.key
            element.set(name, attr.value if attr.value is not None else "")
        if prop.value is not None:
            if prop.key == "name" and not _is_latin1(prop.value):
                element.set("enctype", "base64")
                raw = prop.value.encode("utf-8", errors="surrogateescape")
                element.text = base64.b64encode(raw).decode("ascii")
            else:
                element.text = prop.value
        serialize_props(prop.children, element)
        created.append(element)
    return created


def serialize_files(files: Iterable[XarFile], parent: ET.Element) -> list[ET.Element]:
    """Append a ``<file>`` element for each file (and its children) to ``parent``."""
    created = []
    for entry in files:
        element = ET.SubElement(parent, "file")
        for attr in entry.attrs:
            element.set(attr.key, attr.value if attr.value is not None else "")
        serialize_props(entry.props, element)
        serialize_files(entry.children, element)
        created.append(element)
    return created


def _text_value(text: str, encoded: bool) -> str:
    if not encoded:
        return text
    try:
        raw = base64.b64decode(text.strip(_XML_BLANKS), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise XarError(f"invalid base64 in name property: {text!r}") from exc
    return raw.decode("utf-8", errors="surrogateescape")


def unserialize_prop(
    file: XarFile, parent: Optional[Prop], element: ET.Element
) -> Prop:
    """Build a property (and its children) of ``file`` from ``element``."""
    prop = file.new_prop(parent)
    prefix, key = _split_name(element.tag)
    prop.key = key
    if prefix:
        prop.prefix = prefix
    is_name = key == "name"
    encoded = False

    for raw_name, value in element.attrib.items():
        attr_prefix, attr_key = _split_name(raw_name)
        if is_name and attr_key == "enctype" and value == "base64":
            encoded = True
            continue
        prop.attrs.insert(0, Attr(attr_key, value, attr_prefix))

    def take_text(text: Optional[str]) -> None:
        if text is None or not text.strip(_XML_BLANKS):
            return
        prop.value = _text_value(text, encoded)
        if is_name:
            owner = file.parent
            if owner is not None and owner.fspath is not None:
                file.fspath = f"{owner.fspath}/{prop.value}"
            else:
                file.fspath = prop.value

    take_text(element.text)
    for child in element:
        unserialize_prop(file, prop, child)
        take_text(child.tail)
    return prop


def unserialize_file(
    element: ET.Element,
    parent: Optional[XarFile] = None,
    links: Optional[MutableMapping[str, XarFile]] = None,
) -> XarFile:
    """Build a file from a ``<file>`` element, including its child files.

    When ``links`` is given, files that are the original of a hardlink set
    are recorded in it under their ``id`` attribute.
    """
    entry = XarFile(parent=parent)
    for raw_name, value in element.attrib.items():
        _, attr_key = _split_name(raw_name)
        entry.attrs.insert(0, Attr(attr_key, value))

    for child in element:
        _, local = _split_name(child.tag)
        if local == "file":
            unserialize_file(child, entry, links)
        else:
            unserialize_prop(entry, None, child)

    if links is not None and entry.get("type") == "hardlink":
        if entry.get_attr("type", "link") == "original":
            file_id = entry.get_attr(None, "id")
            if file_id is not None:
                links.setdefault(file_id, entry)
    return entry