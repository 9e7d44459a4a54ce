"""2D raster drawing backends used by the compositor."""

from abc import ABC, abstractmethod
from typing import Any

import numpy as np
from PIL import Image, ImageColor

from padrender.geometry import PixelBox, validate_canvas_size

Color = tuple[int, int, int, int]


def parse_color(value: str | tuple[int, ...], default: str = "#000000") -> Color:
    """Parse a CSS colour string to RGBA, falling back to ``default`` for unparseable input."""
    if isinstance(value, tuple):
        return (*value[:3], value[3] if len(value) > 3 else 255)  # type: ignore[return-value]
    try:
        rgba = ImageColor.getcolor(value, "RGBA")
    except (ValueError, AttributeError, TypeError):
        rgba = ImageColor.getcolor(default, "RGBA")
    return rgba  # type: ignore[return-value]


def scale_alpha(image: Image.Image, opacity: float) -> Image.Image:
    """Return an RGBA copy of ``image`` with its alpha multiplied by ``opacity`` in [0, 1]."""
    image = image.convert("RGBA")
    if opacity >= 1.0:
        return image.copy()
    rgba = np.array(image)
    rgba[..., 3] = np.rint(rgba[..., 3].astype(np.float32) * max(opacity, 0.0)).astype(np.uint8)
    return Image.fromarray(rgba)


class BaseCanvas(ABC):
    """Drawing surface of a fixed pixel size.

    Every operation composites over the current contents with source-over alpha blending.
    """

    def __init__(self, size: tuple[int, int], background: str | Color | None = None) -> None:
        self._size = validate_canvas_size(size)
        self._background = background

    @property
    def size(self) -> tuple[int, int]:
        return self._size

    def draw_image(self, image: Image.Image, box: PixelBox, opacity: float = 1.0) -> None:
        """Draw ``image`` stretched into ``box``; parts outside the canvas are clipped."""
        self._validate_image(image)
        left, top, right, bottom = box.rounded()
        self._draw_image(image, (left, top), (right - left, bottom - top), opacity)

    def draw_centered(self, tile: Image.Image, center: tuple[float, float], rotation: float = 0.0) -> None:
        """Draw ``tile`` with its centre on ``center``, rotated clockwise by ``rotation`` degrees about it."""
        self._validate_image(tile)
        self._draw_centered(tile, center, rotation)

    def fill_mask(self, mask: Image.Image, fill: Color | Image.Image, opacity: float = 1.0) -> None:
        """Paint ``fill`` (a colour or a canvas-sized image) through an "L" coverage ``mask``."""
        if mask.mode != "L" or mask.size != self.size:
            raise ValueError(f"Mask must be mode L and size {self.size}, got {mask.mode} {mask.size}")
        if isinstance(fill, Image.Image) and fill.size != self.size:
            raise ValueError(f"Fill image size {fill.size} does not match canvas {self.size}")
        self._fill_mask(mask, fill, opacity)

    def _validate_image(self, image: Any) -> None:
        if not isinstance(image, Image.Image):
            raise TypeError(f"Expected PIL.Image, got {type(image)}")

    @abstractmethod
    def _draw_image(self, image: Image.Image, offset: tuple[int, int], size: tuple[int, int], opacity: float) -> None:
        pass

    @abstractmethod
    def _draw_centered(self, tile: Image.Image, center: tuple[float, float], rotation: float) -> None:
        pass

    @abstractmethod
    def _fill_mask(self, mask: Image.Image, fill: Color | Image.Image, opacity: float) -> None:
        pass

    @abstractmethod
    def snapshot(self) -> Image.Image:
        """Copy of the current canvas contents as an RGBA image."""
        pass


class PillowCanvas(BaseCanvas):
    def __init__(self, size: tuple[int, int], background: str | Color | None = None) -> None:
        super().__init__(size, background)
        fill = (0, 0, 0, 0) if background is None else parse_color(background)
        self._image = Image.new("RGBA", self.size, fill)

    def _composite_layer(self, layer: Image.Image, offset: tuple[int, int]) -> None:
        full = Image.new("RGBA", self.size, (0, 0, 0, 0))
        full.paste(layer, offset)
        self._image = Image.alpha_composite(self._image, full)

    def _draw_image(self, image: Image.Image, offset: tuple[int, int], size: tuple[int, int], opacity: float) -> None:
        resized = image.convert("RGBA")
        if resized.size != size:
            resized = resized.resize(size, resample=Image.Resampling.BILINEAR)
        self._composite_layer(scale_alpha(resized, opacity), offset)

    def _draw_centered(self, tile: Image.Image, center: tuple[float, float], rotation: float) -> None:
        tile = tile.convert("RGBA")
        if rotation % 360:
            # PIL rotates counter-clockwise.
            tile = tile.rotate(-rotation, resample=Image.Resampling.BICUBIC, expand=True)
        offset = (int(round(center[0] - tile.width / 2.0)), int(round(center[1] - tile.height / 2.0)))
        self._composite_layer(tile, offset)

    def _fill_mask(self, mask: Image.Image, fill: Color | Image.Image, opacity: float) -> None:
        if isinstance(fill, Image.Image):
            layer = fill.convert("RGBA")
        else:
            layer = Image.new("RGBA", self.size, fill)
        alpha = np.asarray(layer.getchannel("A"), dtype=np.float32) * np.asarray(mask, dtype=np.float32) / 255.0
        alpha *= min(max(opacity, 0.0), 1.0)
        layer.putalpha(Image.fromarray(np.rint(alpha).astype(np.uint8)))
        self._image = Image.alpha_composite(self._image, layer)

    def snapshot(self) -> Image.Image:
        return self._image.copy()


CANVAS_BACKENDS = {
    "pillow": PillowCanvas,
}


def build_canvas(name: str, size: tuple[int, int], background: str | Color | None = None) -> BaseCanvas:
    """Create a drawing surface by backend name.

    Raises:
        ValueError: If the backend name is not registered.
    """
    if name not in CANVAS_BACKENDS:
        available = list(CANVAS_BACKENDS.keys())
        raise ValueError(f"Unknown canvas backend: {name}. Available: {available}")
    return CANVAS_BACKENDS[name](size, background)
