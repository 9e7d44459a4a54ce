"""
Percentage-of-canvas geometry.

Every element position in a design is stored as a percentage of the working canvas so that
the same design renders at any output resolution. This module converts between percent and
pixel space and computes where the base image lands for a given zoom and position.
"""

import math
from dataclasses import dataclass
from typing import Literal

from padrender.errors import InvalidGeometryError

FitMode = Literal["stretch", "cover"]


def _require_finite(*values: float) -> None:
    for value in values:
        if not math.isfinite(value):
            raise InvalidGeometryError(f"Non-finite geometry value: {value}")


def validate_canvas_size(size: tuple[int, int]) -> tuple[int, int]:
    """Return ``size`` as an int tuple, raising if it cannot describe a raster."""
    width, height = size
    _require_finite(float(width), float(height))
    width, height = int(round(width)), int(round(height))
    if width <= 0 or height <= 0:
        raise InvalidGeometryError(f"Canvas size must be positive, got {(width, height)}")
    return width, height


def percent_to_px(x_percent: float, y_percent: float, size: tuple[int, int]) -> tuple[float, float]:
    """Convert a percent point to absolute pixel coordinates.

    Percentages outside [0, 100] are valid and simply land outside the visible canvas.

    Args:
        x_percent: Horizontal position as percent of canvas width.
        y_percent: Vertical position as percent of canvas height.
        size: Canvas size (width, height) in pixels.

    Returns:
        Pixel coordinates (x, y) as floats.
    """
    _require_finite(x_percent, y_percent)
    width, height = size
    return x_percent / 100.0 * width, y_percent / 100.0 * height


def px_to_percent(x_px: float, y_px: float, size: tuple[int, int]) -> tuple[float, float]:
    """Inverse of :func:`percent_to_px`, used to turn drag positions back into stored percents."""
    _require_finite(x_px, y_px)
    width, height = validate_canvas_size(size)
    return x_px / width * 100.0, y_px / height * 100.0


def rotate_point(point: tuple[float, float], anchor: tuple[float, float], degrees: float) -> tuple[float, float]:
    """Rotate ``point`` clockwise (screen coordinates) about ``anchor``."""
    _require_finite(degrees)
    rad = math.radians(degrees)
    cos_a, sin_a = math.cos(rad), math.sin(rad)
    dx, dy = point[0] - anchor[0], point[1] - anchor[1]
    return anchor[0] + dx * cos_a - dy * sin_a, anchor[1] + dx * sin_a + dy * cos_a


@dataclass(frozen=True)
class PixelBox:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> tuple[float, float]:
        return self.left + self.width / 2.0, self.top + self.height / 2.0

    def rounded(self) -> tuple[int, int, int, int]:
        """Integer (left, top, right, bottom) box suitable for PIL crop/paste."""
        left, top = int(round(self.left)), int(round(self.top))
        right, bottom = int(round(self.right)), int(round(self.bottom))
        return left, top, max(right, left + 1), max(bottom, top + 1)


@dataclass(frozen=True)
class PercentRect:
    """Rectangle in percent units, anchored at its top-left corner."""

    x: float
    y: float
    width: float
    height: float

    def to_pixels(self, size: tuple[int, int]) -> PixelBox:
        _require_finite(self.x, self.y, self.width, self.height)
        left, top = percent_to_px(self.x, self.y, size)
        width, height = percent_to_px(self.width, self.height, size)
        return PixelBox(left, top, width, height)

    @classmethod
    def from_pixels(cls, box: PixelBox, size: tuple[int, int]) -> "PercentRect":
        x, y = px_to_percent(box.left, box.top, size)
        width, height = px_to_percent(box.width, box.height, size)
        return cls(x, y, width, height)

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


def centered_box(
    x_percent: float,
    y_percent: float,
    width_percent: float,
    height_percent: float,
    size: tuple[int, int],
) -> PixelBox:
    """Pixel box of an element whose declared (x, y) is its centre anchor."""
    cx, cy = percent_to_px(x_percent, y_percent, size)
    width, height = percent_to_px(width_percent, height_percent, size)
    return PixelBox(cx - width / 2.0, cy - height / 2.0, width, height)


def base_image_box(
    canvas_size: tuple[int, int],
    image_size: tuple[int, int],
    zoom: float = 1.0,
    position: tuple[float, float] = (0.0, 0.0),
    fit: FitMode = "stretch",
) -> PixelBox:
    """Where the working raster lands on the canvas.

    The raster first fills the canvas (``stretch`` ignores aspect ratio, ``cover`` keeps it and
    overflows the short side), is then scaled about the canvas centre by ``zoom`` and finally
    translated by ``position`` percent of the canvas.
    """
    canvas_w, canvas_h = validate_canvas_size(canvas_size)
    image_w, image_h = validate_canvas_size(image_size)
    _require_finite(zoom, position[0], position[1])
    if zoom <= 0:
        raise InvalidGeometryError(f"Zoom must be positive, got {zoom}")

    if fit == "cover":
        scale = max(canvas_w / image_w, canvas_h / image_h)
        width, height = image_w * scale, image_h * scale
    elif fit == "stretch":
        width, height = float(canvas_w), float(canvas_h)
    else:
        raise ValueError(f"Unknown fit mode: {fit}. Available: ['stretch', 'cover']")

    width, height = width * zoom, height * zoom
    offset_x, offset_y = percent_to_px(position[0], position[1], (canvas_w, canvas_h))
    left = (canvas_w - width) / 2.0 + offset_x
    top = (canvas_h - height) / 2.0 + offset_y
    return PixelBox(left, top, width, height)


def clamp_crop_area(rect: PercentRect, min_size: float = 10.0) -> PercentRect:
    """Clamp a crop rectangle into [0, 100]² with at least ``min_size`` percent per edge.

    Raises:
        InvalidGeometryError: If any coordinate is non-finite.
    """
    _require_finite(rect.x, rect.y, rect.width, rect.height)
    min_size = min(max(min_size, 0.0), 100.0)
    width = min(max(rect.width, min_size), 100.0)
    height = min(max(rect.height, min_size), 100.0)
    x = min(max(rect.x, 0.0), 100.0 - width)
    y = min(max(rect.y, 0.0), 100.0 - height)
    return PercentRect(x, y, width, height)
