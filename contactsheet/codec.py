# contactsheet/codec.py
import base64
import binascii
import re
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image

from contactsheet.errors import EncodeError, ItemDecodeError, NameFormatError

# <name>.<ext>, ext is matched case-insensitively
_NAME_RE = re.compile(r"(.+)\.(jpg|jpeg|png)", re.IGNORECASE)

_FORMATS = {"jpg": "JPEG", "jpeg": "JPEG", "png": "PNG"}

CONTENT_TYPES = {"PNG": "image/png", "JPEG": "image/jpeg"}


def parse_image_name(name: str) -> Tuple[str, str]:
    """Split an uploaded file name into (stem, lower-cased extension)."""
    match = _NAME_RE.fullmatch(name or "")
    if not match:
        raise NameFormatError(name)
    return match.group(1), match.group(2).lower()


def format_hint(key: str) -> Optional[str]:
    """Pillow format name for a storage key, or None when the extension is unknown."""
    _, dot, ext = key.rpartition(".")
    if not dot:
        return None
    return _FORMATS.get(ext.lower())


def format_for_extension(ext: str) -> str:
    return _FORMATS[ext.lower()]


def decode_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise ItemDecodeError(f"cannot decode base64 image string, incorrect input image: {e}")


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode(data: bytes, format_hint: Optional[str] = None) -> Image.Image:
    formats = [format_hint] if format_hint else None
    try:
        img = Image.open(BytesIO(data), formats=formats)
        img.load()
        return img
    except Exception as e:
        # decoders raise DecompressionBombError, struct.error, EOFError, ...
        label = format_hint.lower() if format_hint else "image"
        raise ItemDecodeError(f"{label} decode error: {e}")


def _flatten(img: Image.Image) -> Image.Image:
    # JPEG has no alpha; transparent pixels end up black
    if img.mode == "RGB":
        return img
    rgba = img.convert("RGBA")
    background = Image.new("RGB", rgba.size, (0, 0, 0))
    background.paste(rgba, (0, 0), rgba.getchannel("A"))
    return background


def encode(img: Image.Image, fmt: str) -> bytes:
    fmt = fmt.upper()
    if fmt not in CONTENT_TYPES:
        raise EncodeError(f"unsupported output format: {fmt}")
    buf = BytesIO()
    try:
        out = _flatten(img) if fmt == "JPEG" else img
        out.save(buf, format=fmt)
    except (OSError, ValueError) as e:
        raise EncodeError(f"{fmt.lower()} encoding error: {e}")
    return buf.getvalue()
