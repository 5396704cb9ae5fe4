"""Unit tests for content-type detection."""

import io

import pytest

from app.services.oss.content import (
    OCTET_STREAM,
    detect_content_type,
    detect_stream,
    ensure_webp_convertible,
    is_webp_convertible,
    sniff_content_type,
)
from app.services.oss.errors import UnsupportedFormat


@pytest.mark.parametrize(
    "head,expected",
    [
        (b"\xff\xd8\xff\xe0\x00\x10JFIF", "image/jpeg"),
        (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
        (b"GIF89a\x01\x00", "image/gif"),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b"%PDF-1.7\n", "application/pdf"),
        (b"\x00\x00\x00\x1cftypavif", "image/avif"),
        (b"\x00\x00\x00\x18ftypmp42", "video/mp4"),
        (b"<svg xmlns='http://www.w3.org/2000/svg'>", "image/svg+xml"),
        (b"<!DOCTYPE html><html>", "text/html; charset=utf-8"),
        (b"jadwal sholat jumat", "text/plain; charset=utf-8"),
        (b"\x00\x01\x02\xfe\xff", OCTET_STREAM),
        (b"", OCTET_STREAM),
    ],
)
def test_sniff_content_type(head, expected):
    assert sniff_content_type(head) == expected


def test_extension_wins_for_known_types():
    assert detect_content_type("report.pdf") == "application/pdf"
    assert detect_content_type("photo.PNG") == "image/png"


def test_extension_overrides_sniffed_type():
    # A WebP uploaded with a .webp name but odd bytes is still image/webp
    assert detect_content_type("banner.webp", b"garbage") == "image/webp"
    assert detect_content_type("icon.svg", b"<?xml version='1.0'?>") == "image/svg+xml"
    assert detect_content_type("cover.avif") == "image/avif"


def test_sniffs_when_extension_unknown():
    assert detect_content_type("upload", b"\x89PNG\r\n\x1a\n") == "image/png"
    assert detect_content_type("blob.unknownext", b"%PDF-1.4") == "application/pdf"
    assert detect_content_type("upload") == OCTET_STREAM


def test_detect_stream_rewinds_seekable():
    stream = io.BytesIO(b"%PDF-1.4 body")
    ctype, reader = detect_stream("doc", stream)
    assert ctype == "application/pdf"
    assert reader.read() == b"%PDF-1.4 body"


class _NonSeekable:
    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)

    def read(self, size=-1):
        return self._buf.read(size)

    def seekable(self):
        return False


def test_detect_stream_rejoins_non_seekable():
    data = b"\x89PNG\r\n\x1a\n" + b"x" * 2000
    ctype, reader = detect_stream("noext", _NonSeekable(data))
    assert ctype == "image/png"
    assert reader.read() == data


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("a.jpg", True),
        ("a.JPEG", True),
        ("a.png", True),
        ("a.webp", True),
        ("a.gif", False),
        ("a.pdf", False),
        ("noext", False),
    ],
)
def test_is_webp_convertible(filename, expected):
    assert is_webp_convertible(filename) is expected


def test_ensure_webp_convertible_rejects_gif():
    with pytest.raises(UnsupportedFormat):
        ensure_webp_convertible("anim.gif")
    ensure_webp_convertible("ok.PNG")
