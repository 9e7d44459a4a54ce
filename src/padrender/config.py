"""Render configuration backed by OmegaConf structured configs."""

import logging
from dataclasses import dataclass, field
from typing import Any, cast

from omegaconf import OmegaConf

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    # Base raster placement: "stretch" fills the canvas like the storefront editor, "cover" keeps aspect.
    fit: str = "stretch"
    background_color: str = "#ffffff"
    placeholder_color: str = "#e5e7eb"
    canvas_backend: str = "pillow"
    default_canvas_size: list[int] = field(default_factory=lambda: [900, 400])
    px_per_mm: float = 1.0

    output_format: str = "png"
    jpeg_quality: int = 95

    preview_debounce_ms: int = 300
    preview_scale: float = 0.5

    rgb_band_ratio: float = 0.02

    min_crop_percent: float = 10.0
    interactive_min_crop_percent: float = 20.0
    crop_handle_radius_percent: float = 3.0

    background_tolerance: float = 30.0
    source_timeout_s: float = 10.0

    font_dirs: list[str] = field(default_factory=list)
    default_font: str = "DejaVuSans.ttf"


def load_config(path: str | None = None, overrides: list[str] | None = None) -> RenderConfig:
    """Build a :class:`RenderConfig` from defaults, an optional YAML file and dotlist overrides.

    Args:
        path: Optional YAML file whose keys override the defaults.
        overrides: Optional ``key=value`` strings applied last, e.g. ``["jpeg_quality=90"]``.

    Returns:
        Validated render configuration.
    """
    cfg = OmegaConf.structured(RenderConfig)
    if path is not None:
        logger.info(f"Loading render config from {path}")
        cfg = OmegaConf.merge(cfg, OmegaConf.load(path))
    if overrides:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(overrides))
    config = cast(RenderConfig, OmegaConf.to_object(cfg))
    _validate(config)
    return config


def config_to_dict(config: RenderConfig) -> dict[str, Any]:
    return cast(dict[str, Any], OmegaConf.to_container(OmegaConf.structured(config), resolve=True))


def _validate(config: RenderConfig) -> None:
    if config.fit not in ("stretch", "cover"):
        raise ValueError(f"fit must be 'stretch' or 'cover', got {config.fit}")
    if config.output_format not in ("png", "jpeg"):
        raise ValueError(f"output_format must be 'png' or 'jpeg', got {config.output_format}")
    if not 1 <= config.jpeg_quality <= 100:
        raise ValueError(f"jpeg_quality must be in [1, 100], got {config.jpeg_quality}")
    if not 0 < config.preview_scale <= 1:
        raise ValueError(f"preview_scale must be in (0, 1], got {config.preview_scale}")
    if config.preview_debounce_ms < 0:
        raise ValueError(f"preview_debounce_ms must be >= 0, got {config.preview_debounce_ms}")
    if config.px_per_mm <= 0:
        raise ValueError(f"px_per_mm must be positive, got {config.px_per_mm}")
    if len(config.default_canvas_size) != 2 or min(config.default_canvas_size) <= 0:
        raise ValueError(f"default_canvas_size must be two positive ints, got {config.default_canvas_size}")
