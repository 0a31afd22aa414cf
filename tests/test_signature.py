import re
import time
import xml.etree.ElementTree as ET

import pytest

from xarkit.datamod import Archive
from xarkit.signature import (
    MILLENNIUM_EPOCH,
    XMLDSIG_NAMESPACE,
    Signature,
    create_signature,
    serialize_signatures,
    unserialize_signature,
)
from xarkit.tree import XarError, XarFile


def test_create_reserves_heap_space():
    archive = Archive()
    first = create_signature(archive, "RSA", 256)
    second = create_signature(archive, "CMS", 100)
    assert first.offset == 0
    assert second.offset == 256
    assert archive.heap_offset == 356
    assert archive.heap_len == 356
    assert archive.signatures == [first, second]
    assert first.archive is archive


def test_create_after_files_raises():
    archive = Archive()
    archive.files.append(XarFile())
    with pytest.raises(XarError):
        create_signature(archive, "RSA", 256)
    assert archive.signatures == []
    assert archive.heap_offset == 0


def test_first_signature_records_creation_time():
    archive = Archive()
    create_signature(archive, "RSA", 10)
    stamp = archive.toc.get("signature-creation-time")
    assert re.fullmatch(r"-?\d+\.\d", stamp)
    seconds = int(stamp.split(".")[0])
    assert abs(seconds - (time.time() - MILLENNIUM_EPOCH)) < 5


def test_second_signature_keeps_creation_time():
    archive = Archive()
    create_signature(archive, "RSA", 10)
    archive.toc.set("signature-creation-time", "fixed")
    create_signature(archive, "CMS", 10)
    assert archive.toc.get("signature-creation-time") == "fixed"


def test_certificates_in_order():
    sig = Signature(type="RSA")
    sig.add_certificate(b"first")
    sig.add_certificate(b"second")
    assert sig.certificate_count == 2
    assert sig.certificate(0) == b"first"
    assert sig.certificate(1) == b"second"


def test_certificate_out_of_range():
    sig = Signature(type="RSA")
    with pytest.raises(IndexError):
        sig.certificate(0)
    sig.add_certificate(b"only")
    with pytest.raises(IndexError):
        sig.certificate(1)


def test_copy_signed_data_reads_heap():
    archive = Archive()
    sig = create_signature(archive, "RSA", 4)
    archive.heap.write(b"SIGN" + b"checksum!")
    archive.toc.set("checksum/offset", "4")
    archive.toc.set("checksum/size", "9")
    result = sig.copy_signed_data()
    assert result.data == b"checksum!"
    assert result.signature == b"SIGN"
    assert result.offset == 0


def test_copy_signed_data_short_heap_raises():
    archive = Archive()
    sig = create_signature(archive, "RSA", 8)
    archive.heap.write(b"abc")
    with pytest.raises(XarError):
        sig.copy_signed_data()


def test_copy_signed_data_without_archive():
    with pytest.raises(XarError):
        Signature(type="RSA", length=4).copy_signed_data()


def test_serialize_structure():
    sig = Signature(type="RSA", length=256, offset=20)
    sig.add_certificate(b"\x30\x82\x01")
    root = ET.Element("toc")
    (element,) = serialize_signatures([sig], root)
    assert element.tag == "signature"
    assert element.get("style") == "RSA"
    assert element.find("offset").text == "20"
    assert element.find("size").text == "256"
    key_info = element.find("KeyInfo")
    assert key_info.get("xmlns") == XMLDSIG_NAMESPACE
    certs = key_info.findall("X509Data/X509Certificate")
    assert [c.text for c in certs] == ["MIIB"]


def test_serialize_without_certificates_has_no_x509data():
    root = ET.Element("toc")
    (element,) = serialize_signatures([Signature(type="RSA", length=1)], root)
    assert element.find("KeyInfo/X509Data") is None


def test_round_trip_through_text():
    archive = Archive()
    sigs = [Signature(type="RSA", length=256, offset=20), Signature(type="CMS", length=9, offset=276)]
    sigs[0].add_certificate(b"cert-one")
    sigs[0].add_certificate(b"cert-two")
    root = ET.Element("toc")
    serialize_signatures(sigs, root)
    parsed = ET.fromstring(ET.tostring(root))
    restored = [unserialize_signature(archive, e) for e in parsed]
    assert [(s.type, s.length, s.offset) for s in restored] == [
        (s.type, s.length, s.offset) for s in sigs
    ]
    assert restored[0].certificates == [b"cert-one", b"cert-two"]
    assert restored[1].certificates == []
    assert restored[0].archive is archive


def test_unserialize_document_form():
    text = (
        '<signature style="SHA1withRSA"><offset>20</offset><size>256</size>'
        f'<KeyInfo xmlns="{XMLDSIG_NAMESPACE}"><X509Data>'
        "<X509Certificate>\nAAEC\n</X509Certificate>"
        "</X509Data></KeyInfo></signature>"
    )
    sig = unserialize_signature(None, ET.fromstring(text))
    assert sig.type == "SHA1withRSA"
    assert sig.offset == 20
    assert sig.length == 256
    assert sig.certificates == [b"\x00\x01\x02"]


def test_unserialize_bad_numbers_become_zero():
    text = "<signature><offset>abc</offset><size></size></signature>"
    sig = unserialize_signature(None, ET.fromstring(text))
    assert (sig.offset, sig.length, sig.type) == (0, 0, None)