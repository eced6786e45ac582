# contactsheet/compositor.py
"""
Grid compositor: lays an ordered sequence of images out on one contact-sheet
canvas, five per row, earliest first.

The canvas height comes from a fixed three-tier table keyed by image count.
Cells are square and sized off the canvas width (2100 / 5 = 420) at every
tier, so the taller tiers keep unused space below the last row.
"""
from typing import NamedTuple, Sequence, Tuple

from PIL import Image

from contactsheet.logging_config import get_logger

log = get_logger(__name__)

COLUMNS = 5
CANVAS_WIDTH = 2100

# (max image count, canvas height); counts above the last bound use MAX_HEIGHT
_TIERS = ((25, 2100), (50, 4200))
MAX_HEIGHT = 6300


class GridLayout(NamedTuple):
    width: int
    height: int
    columns: int


def grid_layout(count: int) -> GridLayout:
    for bound, height in _TIERS:
        if count <= bound:
            return GridLayout(CANVAS_WIDTH, height, COLUMNS)
    return GridLayout(CANVAS_WIDTH, MAX_HEIGHT, COLUMNS)


def cell_size(layout: GridLayout) -> int:
    return layout.width // layout.columns


def cell_offset(index: int, layout: GridLayout) -> Tuple[int, int]:
    row, col = divmod(index, layout.columns)
    size = cell_size(layout)
    # row height uses the width-derived cell size too
    return col * size, row * size


def new_canvas(width: int, height: int) -> Image.Image:
    return Image.new("RGBA", (width, height), (0, 0, 0, 0))


def combine(images: Sequence[Image.Image]) -> Image.Image:
    """
    Paste each image, unresized, at the top-left corner of its cell. Images
    larger than a cell spill into the neighbouring cells; anything past the
    canvas edge is clipped.
    """
    layout = grid_layout(len(images))
    canvas = new_canvas(layout.width, layout.height)
    log.info("Combining %d images on a %dx%d canvas", len(images), layout.width, layout.height)

    for k, img in enumerate(images):
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        canvas.paste(img, cell_offset(k, layout))
    return canvas
