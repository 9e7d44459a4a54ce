"""
Crop stage.

Cropping is destructive: the cropped raster becomes the new working image and every stored
percentage coordinate is from then on read against it (the "rebase" policy). Text and logo
elements keep their stored percentages when a crop is committed.
"""

import logging
from typing import Literal

from PIL import Image

from padrender.config import RenderConfig
from padrender.data.layer_state import CropArea, LayerState
from padrender.data.sources import DEFAULT_TIMEOUT_S, inline_source, load_raster
from padrender.geometry import PercentRect, clamp_crop_area

logger = logging.getLogger(__name__)

DEFAULT_CROP_AREA = PercentRect(10.0, 10.0, 80.0, 80.0)
MIN_CROP_PERCENT = 10.0
INTERACTIVE_MIN_CROP_PERCENT = 20.0

CropMode = Literal["select", "move", "resize"]
HANDLES = ("nw", "n", "ne", "e", "se", "s", "sw", "w")
CORNER_HANDLES = ("nw", "ne", "sw", "se")

NUDGE_KEYS = {
    "ArrowLeft": (-1.0, 0.0),
    "ArrowRight": (1.0, 0.0),
    "ArrowUp": (0.0, -1.0),
    "ArrowDown": (0.0, 1.0),
}


def crop_box(area: CropArea, size: tuple[int, int]) -> tuple[int, int, int, int]:
    """Pixel (left, top, right, bottom) of a clamped crop area on an image of ``size``."""
    width, height = size
    left = int(round(area.x / 100.0 * width))
    top = int(round(area.y / 100.0 * height))
    right = int(round((area.x + area.width) / 100.0 * width))
    bottom = int(round((area.y + area.height) / 100.0 * height))
    right = min(max(right, left + 1), width)
    bottom = min(max(bottom, top + 1), height)
    return left, top, right, bottom


def apply_crop(image: Image.Image, area: CropArea | None, min_size: float = MIN_CROP_PERCENT) -> Image.Image:
    """Extract the sub-rectangle ``area`` (percent of ``image``) or return ``image`` for ``None``.

    The area is re-clamped first, so malformed persisted values still give a usable crop.
    """
    if area is None:
        return image
    area = clamp_crop_area(area, min_size=min_size)
    box = crop_box(area, image.size)
    logger.debug(f"Cropping {image.size} to box {box}")
    return image.crop(box)


def commit_crop(
    state: LayerState,
    min_size: float = MIN_CROP_PERCENT,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> LayerState:
    """Bake ``state.crop_area`` into the base image and return the rebased snapshot.

    The cropped base is inlined as a PNG data URL and ``crop_area`` is cleared. Element
    percentages are left as they are and now refer to the cropped image.

    Raises:
        DecodeError: If the base image cannot be decoded.
    """
    if state.crop_area is None or state.base_image is None:
        return state
    base = load_raster(state.base_image, timeout=timeout)
    cropped = apply_crop(base, state.crop_area, min_size=min_size)
    logger.info(f"Committed crop {state.crop_area} : {base.size} -> {cropped.size}")
    return state.replace(base_image=inline_source(cropped), crop_area=None)


class CropInteraction:
    """Pointer-driven editing of a crop rectangle in percent space.

    A pointer-down picks one mode: on a handle it resizes, inside the rectangle it moves,
    elsewhere it starts a new selection. ``drag`` updates the rectangle and ``end`` re-clamps it.
    """

    def __init__(
        self,
        area: CropArea = DEFAULT_CROP_AREA,
        min_size: float = INTERACTIVE_MIN_CROP_PERCENT,
        handle_radius: float = 3.0,
        aspect_ratio: float | None = None,
        image_size: tuple[int, int] | None = None,
    ) -> None:
        """
        Args:
            area: Initial rectangle.
            min_size: Minimum edge length in percent enforced while resizing and on release.
            handle_radius: Hit radius of the 8 handles, in percent.
            aspect_ratio: Optional width/height ratio in pixels kept by corner handles.
            image_size: Working image size, needed to convert ``aspect_ratio`` to percent units.
        """
        self.min_size = min_size
        self.handle_radius = handle_radius
        self._ratio = None
        if aspect_ratio:
            self._ratio = aspect_ratio * image_size[1] / image_size[0] if image_size else aspect_ratio
        self.area = clamp_crop_area(area, min_size=min_size)
        self.mode: CropMode | None = None
        self.handle: str | None = None
        self._start = (0.0, 0.0)
        self._origin = self.area

    @classmethod
    def from_config(
        cls,
        config: RenderConfig,
        area: CropArea = DEFAULT_CROP_AREA,
        aspect_ratio: float | None = None,
        image_size: tuple[int, int] | None = None,
    ) -> "CropInteraction":
        return cls(
            area,
            min_size=config.interactive_min_crop_percent,
            handle_radius=config.crop_handle_radius_percent,
            aspect_ratio=aspect_ratio,
            image_size=image_size,
        )

    def handle_points(self) -> dict[str, tuple[float, float]]:
        a = self.area
        cx, cy = a.x + a.width / 2.0, a.y + a.height / 2.0
        right, bottom = a.x + a.width, a.y + a.height
        return {
            "nw": (a.x, a.y),
            "n": (cx, a.y),
            "ne": (right, a.y),
            "e": (right, cy),
            "se": (right, bottom),
            "s": (cx, bottom),
            "sw": (a.x, bottom),
            "w": (a.x, cy),
        }

    def hit_test(self, x: float, y: float) -> tuple[CropMode, str | None]:
        for name, (hx, hy) in self.handle_points().items():
            if abs(x - hx) <= self.handle_radius and abs(y - hy) <= self.handle_radius:
                return "resize", name
        if self.area.contains(x, y):
            return "move", None
        return "select", None

    def begin(self, x: float, y: float) -> CropMode:
        self.mode, self.handle = self.hit_test(x, y)
        self._start = (x, y)
        self._origin = self.area
        return self.mode

    def drag(self, x: float, y: float) -> CropArea:
        if self.mode is None:
            return self.area
        dx, dy = x - self._start[0], y - self._start[1]
        if self.mode == "move":
            self.area = self._moved(dx, dy)
        elif self.mode == "resize":
            self.area = self._resized(dx, dy)
        else:
            self.area = self._selected(x, y)
        return self.area

    def end(self) -> CropArea:
        self.area = clamp_crop_area(self.area, min_size=self.min_size)
        self.mode, self.handle = None, None
        return self.area

    def nudge(self, dx: float, dy: float) -> CropArea:
        a = self.area
        self.area = PercentRect(
            min(max(a.x + dx, 0.0), 100.0 - a.width),
            min(max(a.y + dy, 0.0), 100.0 - a.height),
            a.width,
            a.height,
        )
        return self.area

    def handle_key(self, key: str, shift: bool = False) -> CropArea:
        """Keyboard control: arrows nudge by 1 (5 with shift), Escape resets."""
        if key == "Escape":
            return self.reset()
        if key in NUDGE_KEYS:
            step = 5.0 if shift else 1.0
            dx, dy = NUDGE_KEYS[key]
            return self.nudge(dx * step, dy * step)
        return self.area

    def reset(self) -> CropArea:
        self.area = DEFAULT_CROP_AREA
        self.mode, self.handle = None, None
        return self.area

    def _moved(self, dx: float, dy: float) -> CropArea:
        o = self._origin
        return PercentRect(
            min(max(o.x + dx, 0.0), 100.0 - o.width),
            min(max(o.y + dy, 0.0), 100.0 - o.height),
            o.width,
            o.height,
        )

    def _selected(self, x: float, y: float) -> CropArea:
        sx, sy = self._start
        x, y = min(max(x, 0.0), 100.0), min(max(y, 0.0), 100.0)
        return PercentRect(min(sx, x), min(sy, y), abs(x - sx), abs(y - sy))

    def _resized(self, dx: float, dy: float) -> CropArea:
        o = self._origin
        handle = self.handle or ""
        left, top, right, bottom = o.x, o.y, o.x + o.width, o.y + o.height
        if "w" in handle:
            left = min(max(o.x + dx, 0.0), right - self.min_size)
        if "e" in handle:
            right = min(max(right + dx, left + self.min_size), 100.0)
        if "n" in handle:
            top = min(max(o.y + dy, 0.0), bottom - self.min_size)
        if "s" in handle:
            bottom = min(max(bottom + dy, top + self.min_size), 100.0)

        if self._ratio and handle in CORNER_HANDLES:
            left, top, right, bottom = self._lock_ratio(handle, left, top, right, bottom)
        return PercentRect(left, top, right - left, bottom - top)

    def _lock_ratio(
        self, handle: str, left: float, top: float, right: float, bottom: float
    ) -> tuple[float, float, float, float]:
        ratio = self._ratio or 1.0
        o = self._origin
        width, height = right - left, bottom - top
        # The corner opposite the handle stays fixed.
        anchor_x = o.x + o.width if "w" in handle else o.x
        anchor_y = o.y + o.height if "n" in handle else o.y
        max_w = anchor_x if "w" in handle else 100.0 - anchor_x
        max_h = anchor_y if "n" in handle else 100.0 - anchor_y

        if abs(width - o.width) > abs(height - o.height):
            height = width / ratio
        else:
            width = height * ratio
        if height > max_h:
            height = max_h
            width = height * ratio
        if width > max_w:
            width = max_w
            height = width / ratio
        width, height = max(width, self.min_size), max(height, self.min_size)

        left = anchor_x - width if "w" in handle else anchor_x
        top = anchor_y - height if "n" in handle else anchor_y
        return left, top, left + width, top + height
