"""Line compositing with a soft circular brush."""
from __future__ import annotations

from typing import Iterator, Tuple

import numpy as np

from .bitmap import PortableBitmap
from .color import ColorTriple
from .errors import RangeError

Point = Tuple[int, int]


def bresenham(start: Point, end: Point) -> Iterator[Point]:
    """Yield the integer points of a line from start to end, inclusive."""
    x1, y1 = start
    x2, y2 = end
    steep = abs(y2 - y1) > abs(x2 - x1)
    if steep:
        x1, y1, x2, y2 = y1, x1, y2, x2
    if x1 > x2:
        x1, x2, y1, y2 = x2, x1, y2, y1

    dx = x2 - x1
    dy = abs(y2 - y1)
    error = dx // 2
    y_step = 1 if y1 < y2 else -1
    y = y1
    for x in range(x1, x2 + 1):
        yield (y, x) if steep else (x, y)
        error -= dy
        if error < 0:
            y += y_step
            error += dx


def brush(thickness: float, transparency: float) -> Tuple[int, np.ndarray]:
    """Return (radius, alpha) for a soft circular brush.

    Alpha has shape (2r + 1, 2r + 1) and falls off linearly from
    ``transparency`` at the centre to 0 at distance r.
    """
    radius = int(thickness) // 2
    if radius == 0:
        return 0, np.full((1, 1), transparency)
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    distance = np.hypot(offsets[:, None], offsets[None, :])
    return radius, np.clip(transparency * (1.0 - distance / radius), 0.0, None)


def draw_line(
    bitmap: PortableBitmap,
    color: ColorTriple,
    thickness: float,
    transparency: float,
    start: Point,
    end: Point,
) -> PortableBitmap:
    """Composite a line onto a copy of the bitmap.

    The brush is stamped at every point of the Bresenham line and blended
    in sequence, so overlapping stamps accumulate. Points outside the
    bitmap are clipped.

    Args:
        bitmap: Source bitmap; left unchanged.
        color: Line colour in the bitmap's working space.
        thickness: Brush diameter in pixels (>= 0).
        transparency: Peak opacity in [0, 1].
        start: (x, y) of the first point.
        end: (x, y) of the last point.

    Returns:
        New PortableBitmap with the line drawn.

    Raises:
        RangeError: If thickness is negative or transparency is outside [0, 1].
    """
    if thickness < 0:
        raise RangeError(f"Thickness must be non-negative, got {thickness}")
    if not 0.0 <= transparency <= 1.0:
        raise RangeError(f"Transparency must be between 0 and 1, got {transparency}")

    canvas = bitmap.stored_array().astype(np.float64)
    height, width = canvas.shape[:2]
    ink = np.array(color.as_tuple())
    radius, alpha = brush(thickness, transparency)

    for cx, cy in bresenham(start, end):
        x0, x1 = max(cx - radius, 0), min(cx + radius + 1, width)
        y0, y1 = max(cy - radius, 0), min(cy + radius + 1, height)
        if x0 >= x1 or y0 >= y1:
            continue
        a = alpha[y0 - cy + radius:y1 - cy + radius, x0 - cx + radius:x1 - cx + radius, None]
        region = canvas[y0:y1, x0:x1]
        canvas[y0:y1, x0:x1] = (1.0 - a) * region + a * ink
    return bitmap.derive(canvas)
