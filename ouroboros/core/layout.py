"""Spatial layout: collision-free placement and grid re-flow.

Coordinates are canvas pixels with the origin at the top-left. Every box is
axis-aligned; widgets without an explicit size use the default footprint.
"""

from functools import cmp_to_key
from typing import Iterable

from ouroboros.types import ReservedSpot, Widget

DEFAULT_WIDTH = 450
DEFAULT_HEIGHT = 500
GAP = 20

# find_position grid
ORIGIN_X = 100
ORIGIN_Y = 100
SEARCH_COLUMNS = 4
MAX_CANDIDATES = 1000
FALLBACK_POSITION = (ORIGIN_X + 50, ORIGIN_Y + 50)

# auto_layout grid
LAYOUT_START_X = 50
LAYOUT_START_Y = 100          # room for the shell header
ROW_TOLERANCE = 100           # y-distance still treated as the same visual row


def _box(item) -> tuple[float, float, float, float]:
    width = getattr(item, "width", None) or DEFAULT_WIDTH
    height = getattr(item, "height", None) or DEFAULT_HEIGHT
    return item.x, item.y, width, height


def overlaps(a: tuple[float, float, float, float], b: tuple[float, float, float, float]) -> bool:
    """Strict AABB intersection; boxes that only touch do not overlap."""
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    return ax < bx + bw and ax + aw > bx and ay < by + bh and ay + ah > by


def find_position(
    existing_widgets: Iterable[Widget],
    reserved_spots: Iterable[ReservedSpot] = (),
) -> tuple[float, float]:
    """First cell of the 4-column search grid that collides with nothing.

    Committed widgets use their own size; reserved spots use the default
    footprint. Falls back to (150, 150) when every candidate collides.
    """
    obstacles = [_box(w) for w in existing_widgets]
    obstacles += [_box(spot) for spot in reserved_spots]

    for i in range(MAX_CANDIDATES):
        col = i % SEARCH_COLUMNS
        row = i // SEARCH_COLUMNS
        x = ORIGIN_X + col * (DEFAULT_WIDTH + GAP)
        y = ORIGIN_Y + row * (DEFAULT_HEIGHT + GAP)
        candidate = (x, y, DEFAULT_WIDTH, DEFAULT_HEIGHT)
        if not any(overlaps(candidate, box) for box in obstacles):
            return x, y
    return FALLBACK_POSITION


def _visual_order(a: Widget, b: Widget) -> float:
    dy = a.y - b.y
    if abs(dy) > ROW_TOLERANCE:
        return dy
    return a.x - b.x


def layout_columns(viewport_width: float) -> int:
    return max(1, int((viewport_width - 2 * LAYOUT_START_X) // (DEFAULT_WIDTH + GAP)))


def auto_layout(widgets: Iterable[Widget], viewport_width: float) -> list[Widget]:
    """Re-flow widgets row-major in visual order. Inputs are not mutated.

    Rows are at least ``ROW_TOLERANCE`` tall so a second pass sees the same
    rows and produces the same coordinates.
    """
    ordered = sorted(widgets, key=cmp_to_key(_visual_order))
    cols = layout_columns(viewport_width)

    result: list[Widget] = []
    current_y = LAYOUT_START_Y
    row_height = 0.0
    col = 0
    for widget in ordered:
        if col >= cols:
            col = 0
            current_y += max(row_height, ROW_TOLERANCE) + GAP
            row_height = 0.0
        x = LAYOUT_START_X + col * (DEFAULT_WIDTH + GAP)
        result.append(widget.model_copy(update={"x": x, "y": current_y}))
        row_height = max(row_height, widget.height or DEFAULT_HEIGHT)
        col += 1
    return result
