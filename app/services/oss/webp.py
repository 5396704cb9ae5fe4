"""
WebP re-encoding for image uploads.

Images are decoded with Pillow, shrunk to fit the configured box and encoded
lossy. When a target size is configured the quality is binary-searched and
the image downscaled step by step until the output fits.
"""
import io
import math
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from app.services.oss.errors import DecodeError, UnsupportedFormat

SUPPORTED_FORMATS = {"JPEG", "PNG", "WEBP"}

_QUALITY_STEPS = 8
_MAX_DOWNSCALE_ROUNDS = 6


@dataclass(frozen=True)
class WebPOptions:
    max_width: int = 1600
    max_height: int = 1600
    quality: float = 85
    target_kb: int = 0
    min_quality: float = 45
    max_quality: float = 85
    tolerance_kb: int = 8
    lossless: bool = False
    min_width: int = 480
    min_height: int = 480
    scale_step: float = 0.85

    @classmethod
    def from_settings(cls, settings) -> "WebPOptions":
        return cls(
            max_width=settings.IMAGE_WEBP_MAX_W,
            max_height=settings.IMAGE_WEBP_MAX_H,
            quality=settings.IMAGE_WEBP_QUALITY,
            target_kb=settings.IMAGE_WEBP_TARGET_KB,
            min_quality=settings.IMAGE_WEBP_MIN_Q,
            max_quality=settings.IMAGE_WEBP_MAX_Q,
            tolerance_kb=settings.IMAGE_WEBP_TOLERANCE_KB,
            min_width=settings.IMAGE_WEBP_MIN_W,
            min_height=settings.IMAGE_WEBP_MIN_H,
            scale_step=settings.IMAGE_WEBP_SCALE_STEP,
        )


def decode_image(data: bytes, filename: str = "") -> Image.Image:
    if not data:
        raise DecodeError("empty file")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"cannot decode image {filename!r}: {e}") from e
    if img.format not in SUPPORTED_FORMATS:
        raise UnsupportedFormat(
            f"unsupported image format {img.format or 'unknown'} for {filename!r}"
        )
    return img


def _webp_ready(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "RGBA"):
        return img
    has_alpha = img.mode in ("LA", "PA") or (img.mode == "P" and "transparency" in img.info)
    return img.convert("RGBA" if has_alpha else "RGB")


def _resize(img: Image.Image, width: int, height: int) -> Image.Image:
    return img.resize((max(1, width), max(1, height)), Image.Resampling.LANCZOS)


def downscale_if_needed(img: Image.Image, max_width: int, max_height: int) -> Image.Image:
    """Shrink to fit max_width x max_height keeping aspect ratio. 0 disables a bound."""
    if max_width <= 0 and max_height <= 0:
        return img
    w, h = img.size
    if not ((max_width > 0 and w > max_width) or (max_height > 0 and h > max_height)):
        return img
    scale = 1.0
    if max_width > 0:
        scale = min(scale, max_width / w)
    if max_height > 0:
        scale = min(scale, max_height / h)
    return _resize(img, round(w * scale), round(h * scale))


def _encode(img: Image.Image, quality: float, lossless: bool = False) -> bytes:
    buf = io.BytesIO()
    if lossless:
        img.save(buf, format="WEBP", lossless=True)
    else:
        img.save(buf, format="WEBP", quality=int(round(quality)), method=4)
    return buf.getvalue()


def encode_webp(img: Image.Image, options: Optional[WebPOptions] = None) -> bytes:
    opt = options or WebPOptions()
    img = _webp_ready(img)

    if opt.lossless:
        return _encode(img, 100, lossless=True)

    if opt.target_kb <= 0:
        return _encode(img, opt.quality if opt.quality > 0 else 85)

    target = opt.target_kb * 1024
    tolerance = (opt.tolerance_kb if opt.tolerance_kb > 0 else 8) * 1024
    limit = target + tolerance
    min_q = opt.min_quality if opt.min_quality > 0 else 45
    max_q = opt.max_quality if opt.max_quality > 0 else 85
    if min_q > max_q:
        min_q, max_q = max_q, min_q
    min_w = opt.min_width if opt.min_width > 0 else 480
    min_h = opt.min_height if opt.min_height > 0 else 480
    step = opt.scale_step if 0 < opt.scale_step < 1 else 0.85

    current = img
    last = b""
    for _ in range(_MAX_DOWNSCALE_ROUNDS):
        low, high = min_q, max_q
        best = None
        for _ in range(_QUALITY_STEPS):
            q = (low + high) / 2
            data = _encode(current, q)
            if len(data) <= limit:
                best = data
                low = q
            else:
                high = q
        if best is None:
            best = _encode(current, min_q)
        last = best
        if len(best) <= limit:
            return best

        w, h = current.size
        if w <= min_w and h <= min_h:
            return best

        scale = math.sqrt(limit / len(best)) * 0.95
        scale = min(max(scale, 0.5), step)
        new_w = min(w, max(round(w * scale), min_w))
        new_h = min(h, max(round(h * scale), min_h))
        if new_w >= w and new_h >= h:
            return best
        current = _resize(current, new_w, new_h)

    return last


def convert_to_webp(data: bytes, filename: str = "", options: Optional[WebPOptions] = None) -> bytes:
    opt = options or WebPOptions()
    img = decode_image(data, filename)
    img = downscale_if_needed(img, opt.max_width, opt.max_height)
    return encode_webp(img, opt)
