# contactsheet/filters.py
import enum

import cv2
import numpy as np
from PIL import Image, ImageFilter

from contactsheet.compositor import new_canvas
from contactsheet.errors import UnsupportedOperationError

OUTPUT_SIZE = 400
QUADRANT_SIZE = 200
BLUR_SIGMA = 1.5
SATURATION_PERCENT = 40


class FilterOperation(str, enum.Enum):
    blur = "blur"
    grayscale = "grayscale"
    invert = "invert"
    adjustSaturation = "adjustSaturation"
    all = "all"


def parse_operation(value) -> FilterOperation:
    if isinstance(value, FilterOperation):
        return value
    try:
        return FilterOperation(value)
    except ValueError:
        raise UnsupportedOperationError(value)


# ----- geometry -----
def crop_to_square(img: Image.Image) -> Image.Image:
    """Centered crop whose side is the shorter dimension; never upscales."""
    w, h = img.size
    side = min(w, h)
    left, top = w // 2 - side // 2, h // 2 - side // 2
    return img.crop((left, top, left + side, top + side))


def resize_width(img: Image.Image, width: int) -> Image.Image:
    w, h = img.size
    height = max(1, int(round(width * h / w)))
    return img.resize((width, height), Image.Resampling.LANCZOS)


# ----- filters (RGBA in, RGBA out, alpha untouched) -----
def blur(img: Image.Image, sigma: float = BLUR_SIGMA) -> Image.Image:
    return img.filter(ImageFilter.GaussianBlur(sigma))


def grayscale(img: Image.Image) -> Image.Image:
    gray = img.convert("L")
    return Image.merge("RGBA", (gray, gray, gray, img.getchannel("A")))


def invert(img: Image.Image) -> Image.Image:
    r, g, b, a = img.split()
    r, g, b = (band.point(lambda v: 255 - v) for band in (r, g, b))
    return Image.merge("RGBA", (r, g, b, a))


def adjust_saturation(img: Image.Image, percent: float = SATURATION_PERCENT) -> Image.Image:
    # OpenCV uint8 HLS: channel 2 is saturation in 0..255
    rgb = np.asarray(img.convert("RGB"))
    hls = cv2.cvtColor(rgb, cv2.COLOR_RGB2HLS)
    sat = hls[..., 2].astype(np.float32) * (1 + percent / 100.0)
    hls[..., 2] = np.clip(sat, 0, 255).astype(np.uint8)
    out = Image.fromarray(cv2.cvtColor(hls, cv2.COLOR_HLS2RGB))
    out.putalpha(img.getchannel("A"))
    return out


def _all_quadrants(square: Image.Image) -> Image.Image:
    half = resize_width(square, QUADRANT_SIZE)
    canvas = new_canvas(OUTPUT_SIZE, OUTPUT_SIZE)
    canvas.paste(blur(half), (0, 0))
    canvas.paste(grayscale(half), (0, QUADRANT_SIZE))
    canvas.paste(invert(half), (QUADRANT_SIZE, 0))
    canvas.paste(adjust_saturation(half), (QUADRANT_SIZE, QUADRANT_SIZE))
    return canvas


def modify(img: Image.Image, operation) -> Image.Image:
    """
    Crop to a centered square, resize to 400x400 (Lanczos) and apply the
    named operation. ``all`` tiles four 200x200 variants:

        blur       | invert
        -----------+-----------
        grayscale  | saturation

    Unknown operations raise UnsupportedOperationError before any work.
    """
    op = parse_operation(operation)

    square = crop_to_square(img.convert("RGBA"))
    square = square.resize((OUTPUT_SIZE, OUTPUT_SIZE), Image.Resampling.LANCZOS)

    if op is FilterOperation.blur:
        return blur(square)
    elif op is FilterOperation.grayscale:
        return grayscale(square)
    elif op is FilterOperation.invert:
        return invert(square)
    elif op is FilterOperation.adjustSaturation:
        return adjust_saturation(square)
    elif op is FilterOperation.all:
        return _all_quadrants(square)
    raise UnsupportedOperationError(operation)
