"""
Template background removal.

Templates are authored on a flat background colour. Before a template is used as an overlay
its background is keyed out: candidate colours are sampled at the four corners and the middle
of the top edge, and every pixel within ``tolerance`` (Euclidean RGB distance) of any candidate
becomes fully transparent.
"""

import logging

import numpy as np
from PIL import Image

from padrender.data.sources import RasterSource, describe_source, inline_source, load_raster, source_key
from padrender.errors import DecodeError

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 30.0

# Process-wide, append-only. Writes are idempotent, so concurrent fills of one key are harmless.
_CACHE: dict[tuple[str, float], Image.Image] = {}


def sample_background_colors(rgb: np.ndarray) -> np.ndarray:
    """Candidate background colours, shape (5, 3): TL, TR, BL, BR corners and top-edge middle."""
    h, w = rgb.shape[:2]
    return np.stack(
        [
            rgb[0, 0],
            rgb[0, w - 1],
            rgb[h - 1, 0],
            rgb[h - 1, w - 1],
            rgb[0, w // 2],
        ]
    ).astype(np.float32)


def background_mask(image: Image.Image, tolerance: float = DEFAULT_TOLERANCE) -> np.ndarray:
    """Boolean (H, W) mask, True where the pixel matches a sampled background colour."""
    rgb = np.asarray(image.convert("RGB"), dtype=np.float32)
    candidates = sample_background_colors(rgb)
    mask = np.zeros(rgb.shape[:2], dtype=bool)
    for color in candidates:
        distance = np.sqrt(((rgb - color) ** 2).sum(axis=-1))
        mask |= distance < tolerance
    return mask


def make_background_transparent(image: Image.Image, tolerance: float = DEFAULT_TOLERANCE) -> Image.Image:
    """Return a copy of ``image`` with background pixels set to alpha 0."""
    rgba = np.array(image.convert("RGBA"))
    mask = background_mask(image, tolerance)
    rgba[mask, 3] = 0
    logger.debug(f"Keyed out {mask.mean():.1%} of {image.size[0]}x{image.size[1]} template pixels")
    return Image.fromarray(rgba)


def remove_background(
    source: RasterSource,
    tolerance: float = DEFAULT_TOLERANCE,
    timeout: float = 10.0,
) -> RasterSource:
    """Key out the flat background of a template, caching the result by source identity.

    Args:
        source: Template raster in any form :func:`load_raster` accepts.
        tolerance: RGB distance under which a pixel counts as background.
        timeout: Timeout in seconds for remote sources.

    Returns:
        The processed RGBA image, or ``source`` unchanged if it cannot be loaded.
    """
    key = (source_key(source), float(tolerance))
    cached = _CACHE.get(key)
    if cached is not None:
        return cached.copy()
    try:
        image = load_raster(source, timeout=timeout)
    except DecodeError as exc:
        logger.warning(f"Background removal skipped for {describe_source(source)}: {exc}")
        return source
    processed = make_background_transparent(image, tolerance)
    _CACHE[key] = processed
    return processed.copy()


def remove_background_to_data_url(
    source: RasterSource,
    tolerance: float = DEFAULT_TOLERANCE,
    timeout: float = 10.0,
) -> RasterSource:
    """:func:`remove_background` returning a PNG data URL (or the untouched source on failure)."""
    result = remove_background(source, tolerance=tolerance, timeout=timeout)
    if isinstance(result, Image.Image):
        return inline_source(result)
    return result


def clear_cache() -> None:
    _CACHE.clear()
