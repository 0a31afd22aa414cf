"""Archive signatures: heap space reserved for a signature, plus certificates.

A signature occupies ``length`` bytes of the heap at ``offset``.  It signs
the table-of-contents checksum, which is itself stored in the heap at the
place named by the ``checksum/offset`` and ``checksum/size`` properties of
the archive's top-level ``toc`` entry.
"""

from __future__ import annotations

import base64
import re
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, NamedTuple, Optional

from .datamod import Archive
from .tree import XarError

XMLDSIG_NAMESPACE = "http://www.w3.org/2000/09/xmldsig#"

#: Seconds between the Unix epoch and 2001-01-01 00:00 UTC.
MILLENNIUM_EPOCH = 978307200

_LEADING_DIGITS = re.compile(r"\s*\+?(\d+)")

SignerCallback = Callable[..., Any]


class SignedData(NamedTuple):
    """What a signature covers and the signature bytes themselves."""

    data: bytes
    signature: bytes
    offset: int


def _local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.partition("}")[2]
    return tag.rpartition(":")[2]


def _parse_uint(text: Optional[str]) -> int:
    """Read a leading decimal number; text without one counts as 0."""
    if not text:
        return 0
    match = _LEADING_DIGITS.match(text)
    return int(match.group(1)) if match else 0


def _read_from_heap(archive: Archive, offset: int, length: int) -> bytes:
    if length <= 0:
        return b""
    heap = archive.heap
    try:
        heap.seek(offset)
    except (OSError, ValueError) as exc:
        raise XarError("Unable to seek") from exc
    data = heap.read(length)
    if len(data) != length:
        raise XarError("Unable to read")
    return data


@dataclass(eq=False)
class Signature:
    """One signature of an archive and the certificates that go with it."""

    type: Optional[str] = None
    length: int = 0
    offset: int = 0
    certificates: list[bytes] = field(default_factory=list)
    callback: Optional[SignerCallback] = field(default=None, repr=False)
    context: Any = field(default=None, repr=False)
    archive: Optional[Archive] = field(default=None, repr=False)

    @property
    def certificate_count(self) -> int:
        """The number of certificates attached."""
        return len(self.certificates)

    def add_certificate(self, data: bytes) -> None:
        """Append an X.509 certificate (DER bytes) to this signature."""
        self.certificates.append(bytes(data))

    def certificate(self, index: int) -> bytes:
        """Return the certificate at ``index``."""
        if not 0 <= index < len(self.certificates):
            raise IndexError(f"no certificate at index {index}")
        return self.certificates[index]

    def copy_signed_data(self) -> SignedData:
        """Read the signed checksum and the signature bytes from the heap."""
        archive = self.archive
        if archive is None:
            raise XarError("signature is not attached to an archive")
        size = _parse_uint(archive.toc.get("checksum/size"))
        checksum_offset = _parse_uint(archive.toc.get("checksum/offset"))
        data = _read_from_heap(archive, checksum_offset, size)
        signature = _read_from_heap(archive, self.offset, self.length)
        return SignedData(data, signature, self.offset)


def create_signature(
    archive: Archive,
    type: str,
    length: int,
    callback: Optional[SignerCallback] = None,
    context: Any = None,
) -> Signature:
    """Add a signature to ``archive``, reserving ``length`` bytes of heap.

    Signatures must be added before any file; the first one also records
    the ``signature-creation-time``.
    """
    if archive.files:
        raise XarError("Signatures must be added before files are added")
    signature = Signature(
        type=type,
        length=length,
        offset=archive.heap_offset,
        callback=callback,
        context=context,
        archive=archive,
    )
    archive.heap_offset += length
    archive.heap_len += length

    if not archive.signatures:
        now = time.time()
        seconds = int(now)
        tenths = int((now - seconds) * 1_000_000) // 100_000
        stamp = f"{seconds - MILLENNIUM_EPOCH}.{tenths}"
        archive.toc.set("signature-creation-time", stamp)
    archive.signatures.append(signature)
    return signature


def serialize_signatures(
    signatures: Iterable[Signature], parent: ET.Element
) -> list[ET.Element]:
    """Append a ``<signature>`` element for each signature to ``parent``."""
    created = []
    for signature in signatures:
        element = ET.SubElement(parent, "signature")
        if signature.type is not None:
            element.set("style", signature.type)
        ET.SubElement(element, "offset").text = str(signature.offset)
        ET.SubElement(element, "size").text = str(signature.length)
        key_info = ET.SubElement(element, "KeyInfo")
        key_info.set("xmlns", XMLDSIG_NAMESPACE)
        if signature.certificates:
            x509 = ET.SubElement(key_info, "X509Data")
            for cert in signature.certificates:
                node = ET.SubElement(x509, "X509Certificate")
                node.text = base64.b64encode(cert).decode("ascii")
        created.append(element)
    return created


def unserialize_signature(archive: Optional[Archive], element: ET.Element) -> Signature:
    """Build a signature from a ``<signature>`` element."""
    signature = Signature(type=element.get("style"), archive=archive)
    for child in element:
        name = _local_name(child.tag)
        if name == "size":
            signature.length = _parse_uint(child.text)
        elif name == "offset":
            signature.offset = _parse_uint(child.text)
        elif name == "KeyInfo":
            for x509 in child:
                if _local_name(x509.tag) != "X509Data":
                    continue
                for cert in x509:
                    if _local_name(cert.tag) != "X509Certificate":
                        continue
                    signature.add_certificate(base64.b64decode(cert.text or ""))
    return signature