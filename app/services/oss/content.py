"""Content-type detection and the WebP-or-raw upload decision."""

import io
import mimetypes
from typing import BinaryIO, Tuple

from app.services.oss.errors import UnsupportedFormat
from app.services.oss.keys import split_filename

SNIFF_LEN = 512
OCTET_STREAM = "application/octet-stream"

# Generic sniffers misclassify these, so the extension wins
_EXTENSION_OVERRIDES = {
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".svg": "image/svg+xml",
}

WEBP_SOURCE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})

for _ext, _ctype in _EXTENSION_OVERRIDES.items():
    mimetypes.add_type(_ctype, _ext)


def sniff_content_type(head: bytes) -> str:
    """Magic-number sniff of the first bytes of a file."""
    if not head:
        return OCTET_STREAM
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if head.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"
    if head.startswith(b"%PDF-"):
        return "application/pdf"
    if head.startswith(b"PK\x03\x04"):
        return "application/zip"
    if head[4:8] == b"ftyp":
        brand = head[8:12]
        if brand in (b"avif", b"avis"):
            return "image/avif"
        return "video/mp4"

    text = head.lstrip(b"\xef\xbb\xbf \t\r\n").lower()
    if text.startswith(b"<svg") or (text.startswith(b"<?xml") and b"<svg" in text):
        return "image/svg+xml"
    if text.startswith((b"<!doctype html", b"<html")):
        return "text/html; charset=utf-8"
    if text.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    try:
        head.decode("utf-8")
    except UnicodeDecodeError:
        return OCTET_STREAM
    if b"\x00" in head:
        return OCTET_STREAM
    return "text/plain; charset=utf-8"


def detect_content_type(filename: str, head: bytes = b"") -> str:
    _, ext = split_filename(filename)
    ctype = (mimetypes.guess_type(f"file{ext}")[0] or "") if ext else ""
    if head and (not ctype or ctype == OCTET_STREAM):
        ctype = sniff_content_type(head[:SNIFF_LEN])
    ctype = _EXTENSION_OVERRIDES.get(ext, ctype)
    return ctype or OCTET_STREAM


def detect_stream(filename: str, fileobj: BinaryIO) -> Tuple[str, BinaryIO]:
    """
    Detect the content type of a stream without losing its first bytes.

    Seekable streams are rewound; others are re-joined in memory.
    """
    head = fileobj.read(SNIFF_LEN) or b""
    ctype = detect_content_type(filename, head)
    seekable = getattr(fileobj, "seekable", None)
    if seekable is not None and seekable():
        fileobj.seek(0)
        return ctype, fileobj
    return ctype, io.BytesIO(head + fileobj.read())


def is_webp_convertible(filename: str) -> bool:
    """Uploads we re-encode to WebP, decided by extension only; everything else is stored raw."""
    _, ext = split_filename(filename)
    return ext in WEBP_SOURCE_EXTENSIONS


def ensure_webp_convertible(filename: str) -> None:
    _, ext = split_filename(filename)
    if ext not in WEBP_SOURCE_EXTENSIONS:
        raise UnsupportedFormat(
            f"unsupported image format {ext or '(none)'!r}: use jpg, jpeg, png or webp"
        )
