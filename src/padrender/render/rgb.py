"""RGB edge lighting band drawn around the canvas border of ``rgb`` products."""

import logging

import cv2
import numpy as np
from PIL import Image

from padrender.data.layer_state import RGBEffect
from padrender.render.canvas import BaseCanvas, parse_color

logger = logging.getLogger(__name__)

DEFAULT_BAND_RATIO = 0.02


def band_thickness(size: tuple[int, int], ratio: float = DEFAULT_BAND_RATIO) -> int:
    return max(1, int(round(ratio * max(size))))


def band_mask(size: tuple[int, int], thickness: int) -> Image.Image:
    """Mode "L" mask covering a frame of ``thickness`` pixels along every edge."""
    width, height = size
    mask = np.zeros((height, width), dtype=np.uint8)
    mask[:thickness, :] = 255
    mask[height - thickness :, :] = 255
    mask[:, :thickness] = 255
    mask[:, width - thickness :] = 255
    return Image.fromarray(mask)


def rainbow_fill(size: tuple[int, int]) -> Image.Image:
    """Full hue spectrum running clockwise around the perimeter, starting red at the top-left."""
    width, height = size
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    perimeter = 2.0 * (width + height)
    # Distance travelled along the border to the nearest edge point of each pixel.
    top = xs
    right = width + ys
    bottom = width + height + (width - xs)
    left = 2.0 * width + height + (height - ys)
    distances = np.stack([ys, width - 1 - xs, height - 1 - ys, xs])
    travelled = np.choose(np.argmin(distances, axis=0), [top, right, bottom, left])
    hue = np.rint((travelled / perimeter) % 1.0 * 255.0).astype(np.uint8)
    hsv = np.stack([hue, np.full_like(hue, 255), np.full_like(hue, 255)], axis=-1)
    rgb = cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB_FULL)
    return Image.fromarray(rgb).convert("RGBA")


def draw_rgb_band(canvas: BaseCanvas, effect: RGBEffect, ratio: float = DEFAULT_BAND_RATIO) -> None:
    """Paint the band for ``effect`` on ``canvas``.

    ``static``, ``breathing`` and ``reactive`` draw a solid band in ``effect.color``; the
    animated modes are frozen at full output. ``rainbow`` draws a hue spectrum. The band
    alpha is ``effect.brightness`` percent.
    """
    thickness = band_thickness(canvas.size, ratio)
    mask = band_mask(canvas.size, thickness)
    if effect.mode == "rainbow":
        fill = rainbow_fill(canvas.size)
    else:
        fill = parse_color(effect.color, "#ff0000")
    logger.debug(f"RGB band {effect.mode} {thickness}px at {effect.brightness}%")
    canvas.fill_mask(mask, fill, opacity=effect.brightness / 100.0)
