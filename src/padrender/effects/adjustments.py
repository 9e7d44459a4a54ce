"""
Global adjustments and named filters.

Implements the CSS Filter Effects primitives (brightness, contrast, saturate, grayscale, sepia,
hue-rotate, opacity, blur) on RGBA rasters so that a baked render matches what the browser
editor previews with a CSS ``filter`` string. Primitives run in sequence and each result is
clamped to [0, 255] before the next one, as in a CSS filter chain.
"""

import logging
import math
from typing import Callable

import cv2
import numpy as np
from PIL import Image

from padrender.data.filters import FilterStep, get_filter_chain, step_to_css
from padrender.data.layer_state import Adjustments
from padrender.data.sources import RasterSource, load_raster

logger = logging.getLogger(__name__)


def _saturate_matrix(amount: float) -> np.ndarray:
    s = amount
    return np.array(
        [
            [0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s],
            [0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s],
            [0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s],
        ],
        dtype=np.float32,
    )


def _grayscale_matrix(amount: float) -> np.ndarray:
    g = 1.0 - min(max(amount, 0.0), 1.0)
    return np.array(
        [
            [0.2126 + 0.7874 * g, 0.7152 - 0.7152 * g, 0.0722 - 0.0722 * g],
            [0.2126 - 0.2126 * g, 0.7152 + 0.2848 * g, 0.0722 - 0.0722 * g],
            [0.2126 - 0.2126 * g, 0.7152 - 0.7152 * g, 0.0722 + 0.9278 * g],
        ],
        dtype=np.float32,
    )


def _sepia_matrix(amount: float) -> np.ndarray:
    g = 1.0 - min(max(amount, 0.0), 1.0)
    return np.array(
        [
            [0.393 + 0.607 * g, 0.769 - 0.769 * g, 0.189 - 0.189 * g],
            [0.349 - 0.349 * g, 0.686 + 0.314 * g, 0.168 - 0.168 * g],
            [0.272 - 0.272 * g, 0.534 - 0.534 * g, 0.131 + 0.869 * g],
        ],
        dtype=np.float32,
    )


def _hue_rotate_matrix(degrees: float) -> np.ndarray:
    rad = math.radians(degrees)
    c, s = math.cos(rad), math.sin(rad)
    return np.array(
        [
            [0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928],
            [0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283],
            [0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072],
        ],
        dtype=np.float32,
    )


def _apply_matrix(rgba: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    rgba[..., :3] = cv2.transform(np.ascontiguousarray(rgba[..., :3]), matrix)
    return rgba


def brightness(rgba: np.ndarray, amount: float) -> np.ndarray:
    rgba[..., :3] *= max(amount, 0.0)
    return rgba


def contrast(rgba: np.ndarray, amount: float) -> np.ndarray:
    amount = max(amount, 0.0)
    rgba[..., :3] = (rgba[..., :3] - 127.5) * amount + 127.5
    return rgba


def saturate(rgba: np.ndarray, amount: float) -> np.ndarray:
    return _apply_matrix(rgba, _saturate_matrix(max(amount, 0.0)))


def grayscale(rgba: np.ndarray, amount: float) -> np.ndarray:
    return _apply_matrix(rgba, _grayscale_matrix(amount))


def sepia(rgba: np.ndarray, amount: float) -> np.ndarray:
    return _apply_matrix(rgba, _sepia_matrix(amount))


def hue_rotate(rgba: np.ndarray, degrees: float) -> np.ndarray:
    return _apply_matrix(rgba, _hue_rotate_matrix(degrees))


def opacity(rgba: np.ndarray, amount: float) -> np.ndarray:
    rgba[..., 3] *= min(max(amount, 0.0), 1.0)
    return rgba


def blur(rgba: np.ndarray, radius: float) -> np.ndarray:
    """Gaussian blur with standard deviation ``radius`` pixels, as CSS ``blur()`` defines it.

    Colour is blurred premultiplied by alpha so transparent pixels do not bleed into edges.
    """
    if radius <= 0:
        return rgba
    alpha = rgba[..., 3:4] / 255.0
    premultiplied = np.concatenate([rgba[..., :3] * alpha, rgba[..., 3:4]], axis=-1)
    blurred = cv2.GaussianBlur(premultiplied, ksize=(0, 0), sigmaX=radius, sigmaY=radius, borderType=cv2.BORDER_REFLECT)
    out_alpha = blurred[..., 3:4]
    safe_alpha = np.where(out_alpha > 0, out_alpha / 255.0, 1.0)
    rgba[..., :3] = np.where(out_alpha > 0, blurred[..., :3] / safe_alpha, 0.0)
    rgba[..., 3:4] = out_alpha
    return rgba


PRIMITIVES: dict[str, Callable[[np.ndarray, float], np.ndarray]] = {
    "brightness": brightness,
    "contrast": contrast,
    "saturate": saturate,
    "grayscale": grayscale,
    "sepia": sepia,
    "hue-rotate": hue_rotate,
    "opacity": opacity,
    "blur": blur,
}


def adjustment_steps(adjustments: Adjustments) -> tuple[FilterStep, ...]:
    """Manual adjustments as a primitive chain; neutral controls are omitted."""
    adjustments = adjustments.clamped()
    steps: list[FilterStep] = []
    if adjustments.brightness != 100:
        steps.append(("brightness", adjustments.brightness / 100.0))
    if adjustments.contrast != 100:
        steps.append(("contrast", adjustments.contrast / 100.0))
    if adjustments.saturation != 100:
        steps.append(("saturate", adjustments.saturation / 100.0))
    if adjustments.blur > 0:
        steps.append(("blur", adjustments.blur))
    return tuple(steps)


def build_chain(adjustments: Adjustments, filter_id: str = "none") -> tuple[FilterStep, ...]:
    """Full primitive chain: manual adjustments first, then the named preset."""
    return adjustment_steps(adjustments) + get_filter_chain(filter_id)


def css_filter(adjustments: Adjustments, filter_id: str = "none") -> str:
    """CSS ``filter`` value equivalent to :func:`apply_adjustments`, for UI-side previews."""
    chain = build_chain(adjustments, filter_id)
    return " ".join(step_to_css(step) for step in chain) if chain else "none"


def apply_chain(image: Image.Image, chain: tuple[FilterStep, ...]) -> Image.Image:
    if not chain:
        return image.convert("RGBA")
    rgba = np.asarray(image.convert("RGBA"), dtype=np.float32).copy()
    for name, amount in chain:
        if name not in PRIMITIVES:
            raise ValueError(f"Unknown filter primitive: {name}. Available: {list(PRIMITIVES.keys())}")
        rgba = PRIMITIVES[name](rgba, amount)
        np.clip(rgba, 0.0, 255.0, out=rgba)
    return Image.fromarray(np.rint(rgba).astype(np.uint8))


def apply_adjustments(
    source: RasterSource | Image.Image,
    adjustments: Adjustments | None = None,
    filter_id: str = "none",
) -> Image.Image:
    """Apply manual adjustments and a named filter to a raster.

    Args:
        source: Raster to correct; anything :func:`load_raster` accepts.
        adjustments: Brightness/contrast/saturation in percent and blur radius in pixels.
        filter_id: Named preset composed after the manual adjustments.

    Returns:
        A new RGBA image; the input is not modified.

    Raises:
        DecodeError: If ``source`` cannot be decoded.
        ValueError: If ``filter_id`` is unknown.
    """
    image = load_raster(source)
    chain = build_chain(adjustments or Adjustments(), filter_id)
    logger.debug(f"Applying filter chain {css_filter(adjustments or Adjustments(), filter_id)!r}")
    return apply_chain(image, chain)
