"""Object key construction: slugs, tenant directories, unique names, trash paths."""

import posixpath
import secrets
from datetime import datetime
from typing import Iterable, Optional

from app.utils.time import get_utc_now

_DASH_LIKE = str.maketrans({" ": "-", "_": "-", "—": "-", "–": "-"})
_SLUG_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz0123456789-")


def slugify(value: str) -> str:
    """Lowercase, turn separators into '-', drop everything outside [a-z0-9-]."""
    value = (value or "").strip().lower().translate(_DASH_LIKE)
    value = "".join(ch for ch in value if ch in _SLUG_CHARS)
    return value or "file"


def safe_part(value: str) -> str:
    value = (value or "").strip().strip("/")
    if not value:
        return "unknown"
    return slugify(value)


def join_parts(*parts: str) -> str:
    """Join directory segments, skipping blank ones and sanitizing the rest."""
    return "/".join(safe_part(p) for p in parts if p and p.strip())


def directory_from(parts: Optional[Iterable[str]]) -> str:
    """Accept "a/b/c" or ["a", "b", "c"]; every segment is sanitized."""
    if parts is None:
        return ""
    if isinstance(parts, str):
        parts = parts.split("/")
    return join_parts(*parts)


def split_filename(filename: str):
    """Return (basename-without-ext, lowercased ext) of the last path segment."""
    name = posixpath.basename((filename or "").replace("\\", "/"))
    base, ext = posixpath.splitext(name)
    return base, ext.lower()


def build_object_key(
    filename: str,
    *,
    prefix: str = "",
    directory: str = "",
    now: Optional[datetime] = None,
) -> str:
    """
    {prefix/}{dir/}{slug}_{YYYYmmdd_HHMMSS}_{6 hex}{ext}

    Uniqueness comes from the timestamp plus 24 random bits.
    """
    base, ext = split_filename(filename)
    if not base.strip():
        base = "file"
    stamp = (now or get_utc_now()).strftime("%Y%m%d_%H%M%S")
    head = "".join(
        f"{segment}/" for segment in (prefix.strip("/"), directory.strip("/")) if segment
    )
    return f"{head}{slugify(base)}_{stamp}_{secrets.token_hex(3)}{ext}"


def with_extension(filename: str, ext: str) -> str:
    base, _ = split_filename(filename)
    return f"{base}{ext}"


def spam_key_for(source_key: str, trash_prefix: str, now: Optional[datetime] = None) -> str:
    """spam/{yyyy}/{mm}/{dd}/{HHMMSS}__{basename}"""
    now = now or get_utc_now()
    basename = posixpath.basename(source_key.rstrip("/")) or "file"
    prefix = trash_prefix.strip("/")
    return f"{prefix}/{now:%Y/%m/%d}/{now:%H%M%S}__{basename}"
