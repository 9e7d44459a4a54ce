"""
Immutable design snapshot consumed by the renderer.

A :class:`LayerState` holds every visual parameter of one design. Editors build a new snapshot
for each edit (``state.replace(zoom=1.2)``); the renderer only ever reads them. Snapshots are
persisted as camelCase JSON "configuration" records and rebuilt with :meth:`LayerState.from_config`,
which also understands the shapes written by older editor versions and re-clamps every value.
"""

import dataclasses
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from padrender.data.filters import FILTER_IDS
from padrender.data.sources import RasterSource, inline_source
from padrender.errors import InvalidGeometryError
from padrender.geometry import PercentRect, clamp_crop_area
from padrender.utils.io import read_json, save_json

logger = logging.getLogger(__name__)

CropArea = PercentRect

GradientDirection = Literal["horizontal", "vertical", "diagonal"]
RGBMode = Literal["static", "rainbow", "breathing", "reactive"]
ProductType = Literal["standard", "rgb"]

GRADIENT_DIRECTIONS = ("horizontal", "vertical", "diagonal")
RGB_MODES = ("static", "rainbow", "breathing", "reactive")
PRODUCT_TYPES = ("standard", "rgb")

ZOOM_RANGE = (0.1, 3.0)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def _num(value: Any, default: float, name: str) -> float:
    """Coerce a persisted number, falling back to ``default`` for junk from older records."""
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric {name}={value!r}, using {default}")
        return default
    if not math.isfinite(number):
        logger.warning(f"Ignoring non-finite {name}={value!r}, using {default}")
        return default
    return number


def _mapping(value: Any, name: str) -> dict[str, Any]:
    """Nested record as a dict; anything else is dropped so its fields take their defaults."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning(f"Ignoring malformed {name}={value!r}, expected an object")
        return {}
    return value


def _source(value: Any, name: str) -> str | None:
    if not value:
        return None
    if not isinstance(value, str):
        logger.warning(f"Ignoring malformed {name} of type {type(value).__name__}")
        return None
    return value


def _choice(value: Any, choices: tuple[str, ...], default: str, name: str) -> str:
    if value is None:
        return default
    if value not in choices:
        logger.warning(f"Unknown {name}={value!r}, using {default!r}")
        return default
    return value


@dataclass(frozen=True)
class Adjustments:
    """Global corrections in percent (100 = neutral) plus blur radius in pixels."""

    brightness: float = 100.0
    contrast: float = 100.0
    saturation: float = 100.0
    blur: float = 0.0

    def clamped(self) -> "Adjustments":
        return Adjustments(
            brightness=_clamp(self.brightness, 0.0, 200.0),
            contrast=_clamp(self.contrast, 0.0, 200.0),
            saturation=_clamp(self.saturation, 0.0, 200.0),
            blur=_clamp(self.blur, 0.0, 10.0),
        )

    @property
    def is_neutral(self) -> bool:
        return self == Adjustments()


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Shadow:
    enabled: bool = False
    color: str = "#000000"
    blur: float = 4.0
    offset_x: float = 2.0
    offset_y: float = 2.0


@dataclass(frozen=True)
class Outline:
    enabled: bool = False
    color: str = "#ffffff"
    width: float = 1.0


@dataclass(frozen=True)
class Gradient:
    enabled: bool = False
    from_color: str = "#ff0000"
    to_color: str = "#0000ff"
    direction: GradientDirection = "horizontal"


@dataclass(frozen=True)
class TextElement:
    text: str = ""
    x: float = 50.0
    y: float = 50.0
    font_family: str = "Arial"
    font_size: float = 24.0
    color: str = "#000000"
    rotation: float = 0.0
    opacity: float = 100.0
    bold: bool = False
    italic: bool = False
    shadow: Shadow = field(default_factory=Shadow)
    outline: Outline = field(default_factory=Outline)
    gradient: Gradient = field(default_factory=Gradient)
    visible: bool = True
    id: str | None = None

    def to_config(self) -> dict[str, Any]:
        return {
            "type": "text",
            "id": self.id,
            "text": self.text,
            "xPercent": self.x,
            "yPercent": self.y,
            "fontFamily": self.font_family,
            "fontSizePx": self.font_size,
            "color": self.color,
            "rotationDeg": self.rotation,
            "opacityPercent": self.opacity,
            "bold": self.bold,
            "italic": self.italic,
            "visible": self.visible,
            "shadow": {
                "enabled": self.shadow.enabled,
                "color": self.shadow.color,
                "blurPx": self.shadow.blur,
                "offsetX": self.shadow.offset_x,
                "offsetY": self.shadow.offset_y,
            },
            "outline": {
                "enabled": self.outline.enabled,
                "color": self.outline.color,
                "widthPx": self.outline.width,
            },
            "gradient": {
                "enabled": self.gradient.enabled,
                "from": self.gradient.from_color,
                "to": self.gradient.to_color,
                "direction": self.gradient.direction,
            },
        }

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> "TextElement":
        position = _mapping(cfg.get("position"), "position")
        shadow_cfg = cfg.get("shadow")
        if isinstance(shadow_cfg, dict):
            shadow = Shadow(
                enabled=bool(shadow_cfg.get("enabled", False)),
                color=str(shadow_cfg.get("color") or "#000000"),
                blur=max(0.0, _num(shadow_cfg.get("blurPx", shadow_cfg.get("blur")), 4.0, "shadow.blur")),
                offset_x=_num(shadow_cfg.get("offsetX", shadow_cfg.get("x")), 2.0, "shadow.offsetX"),
                offset_y=_num(shadow_cfg.get("offsetY", shadow_cfg.get("y")), 2.0, "shadow.offsetY"),
            )
        else:
            # Older editors stored a bool flag with sibling shadowColor/shadowBlur/shadowOffset keys.
            offset = _mapping(cfg.get("shadowOffset"), "shadowOffset")
            shadow = Shadow(
                enabled=bool(shadow_cfg),
                color=str(cfg.get("shadowColor") or "#000000"),
                blur=max(0.0, _num(cfg.get("shadowBlur"), 4.0, "shadowBlur")),
                offset_x=_num(cfg.get("shadowOffsetX", offset.get("x")), 2.0, "shadowOffsetX"),
                offset_y=_num(cfg.get("shadowOffsetY", offset.get("y")), 2.0, "shadowOffsetY"),
            )
        outline_cfg = _mapping(cfg.get("outline"), "outline")
        gradient_cfg = _mapping(cfg.get("gradient"), "gradient")
        return cls(
            text=str(cfg.get("text") or ""),
            x=_num(cfg.get("xPercent", cfg.get("x", position.get("x"))), 50.0, "xPercent"),
            y=_num(cfg.get("yPercent", cfg.get("y", position.get("y"))), 50.0, "yPercent"),
            font_family=str(cfg.get("fontFamily") or cfg.get("font") or "Arial"),
            font_size=max(1.0, _num(cfg.get("fontSizePx", cfg.get("fontSize", cfg.get("size"))), 24.0, "fontSize")),
            color=str(cfg.get("color") or "#000000"),
            rotation=_num(cfg.get("rotationDeg", cfg.get("rotation")), 0.0, "rotation"),
            opacity=_clamp(_num(cfg.get("opacityPercent", cfg.get("opacity")), 100.0, "opacity"), 0.0, 100.0),
            bold=bool(cfg.get("bold", False)),
            italic=bool(cfg.get("italic", False)),
            shadow=shadow,
            outline=Outline(
                enabled=bool(outline_cfg.get("enabled", False)),
                color=str(outline_cfg.get("color") or "#ffffff"),
                width=max(0.0, _num(outline_cfg.get("widthPx", outline_cfg.get("width")), 1.0, "outline.width")),
            ),
            gradient=Gradient(
                enabled=bool(gradient_cfg.get("enabled", False)),
                from_color=str(gradient_cfg.get("from") or "#ff0000"),
                to_color=str(gradient_cfg.get("to") or "#0000ff"),
                direction=_choice(  # type: ignore[arg-type]
                    gradient_cfg.get("direction"), GRADIENT_DIRECTIONS, "horizontal", "gradient.direction"
                ),
            ),
            visible=bool(cfg.get("visible", True)),
            id=None if cfg.get("id") is None else str(cfg.get("id")),
        )


@dataclass(frozen=True)
class LogoElement:
    """A raster logo placed by its centre, sized in percent of the canvas."""

    source: RasterSource
    x: float = 50.0
    y: float = 50.0
    width: float = 20.0
    height: float = 20.0
    rotation: float = 0.0
    opacity: float = 100.0
    visible: bool = True
    id: str | None = None

    def to_config(self) -> dict[str, Any]:
        return {
            "type": "logo",
            "id": self.id,
            "source": inline_source(self.source),
            "xPercent": self.x,
            "yPercent": self.y,
            "widthPercent": self.width,
            "heightPercent": self.height,
            "rotationDeg": self.rotation,
            "opacityPercent": self.opacity,
            "visible": self.visible,
        }

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> "LogoElement":
        position = _mapping(cfg.get("position"), "position")
        return cls(
            source=_source(cfg.get("source") or cfg.get("src"), "logo source") or "",
            x=_num(cfg.get("xPercent", cfg.get("x", position.get("x"))), 50.0, "xPercent"),
            y=_num(cfg.get("yPercent", cfg.get("y", position.get("y"))), 50.0, "yPercent"),
            width=max(0.0, _num(cfg.get("widthPercent", cfg.get("width")), 20.0, "widthPercent")),
            height=max(0.0, _num(cfg.get("heightPercent", cfg.get("height")), 20.0, "heightPercent")),
            rotation=_num(cfg.get("rotationDeg", cfg.get("rotation")), 0.0, "rotation"),
            opacity=_clamp(_num(cfg.get("opacityPercent", cfg.get("opacity")), 100.0, "opacity"), 0.0, 100.0),
            visible=bool(cfg.get("visible", True)),
            id=None if cfg.get("id") is None else str(cfg.get("id")),
        )


Element = Union[TextElement, LogoElement]


@dataclass(frozen=True)
class RGBEffect:
    mode: RGBMode = "static"
    color: str = "#ff0000"
    brightness: float = 80.0


@dataclass(frozen=True)
class LayerState:
    base_image: RasterSource | None = None
    adjustments: Adjustments = field(default_factory=Adjustments)
    filter_id: str = "none"
    crop_area: CropArea | None = None
    zoom: float = 1.0
    position: Point = field(default_factory=Point)
    template_overlay: RasterSource | None = None
    text_elements: tuple[Element, ...] = ()
    rgb_effect: RGBEffect | None = None
    product_type: ProductType = "standard"
    canvas_size: tuple[int, int] | None = None
    product_size: str | None = None

    def __post_init__(self) -> None:
        # Lists passed by callers would make the snapshot mutable.
        if not isinstance(self.text_elements, tuple):
            object.__setattr__(self, "text_elements", tuple(self.text_elements))
        if self.canvas_size is not None and not isinstance(self.canvas_size, tuple):
            object.__setattr__(self, "canvas_size", tuple(self.canvas_size))

    def replace(self, **changes: Any) -> "LayerState":
        """Return a new snapshot with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    @property
    def rgb_enabled(self) -> bool:
        return self.product_type == "rgb" and self.rgb_effect is not None

    def to_config(self) -> dict[str, Any]:
        """JSON-safe configuration record; in-memory rasters are inlined as PNG data URLs."""
        return {
            "baseImage": None if self.base_image is None else inline_source(self.base_image),
            "adjustments": {
                "brightness": self.adjustments.brightness,
                "contrast": self.adjustments.contrast,
                "saturation": self.adjustments.saturation,
                "blur": self.adjustments.blur,
            },
            "filterId": self.filter_id,
            "cropArea": None
            if self.crop_area is None
            else {
                "x": self.crop_area.x,
                "y": self.crop_area.y,
                "width": self.crop_area.width,
                "height": self.crop_area.height,
            },
            "zoom": self.zoom,
            "position": {"x": self.position.x, "y": self.position.y},
            "templateOverlay": None if self.template_overlay is None else inline_source(self.template_overlay),
            "textElements": [element.to_config() for element in self.text_elements],
            "rgbEffect": None
            if self.rgb_effect is None
            else {
                "mode": self.rgb_effect.mode,
                "color": self.rgb_effect.color,
                "brightnessPercent": self.rgb_effect.brightness,
            },
            "productType": self.product_type,
            "canvasSize": None if self.canvas_size is None else list(self.canvas_size),
            "productSize": self.product_size,
        }

    @classmethod
    def from_config(cls, cfg: dict[str, Any], min_crop_percent: float = 10.0) -> "LayerState":
        """Rebuild a snapshot from a configuration record.

        Missing fields take their defaults and out-of-range values are clamped rather than
        rejected, so records saved by older editor versions still render.

        Args:
            cfg: Configuration record as produced by :meth:`to_config` (or an older variant).
            min_crop_percent: Minimum crop edge used when re-clamping ``cropArea``.

        Returns:
            The reconstructed snapshot.
        """
        adjustments_cfg = _mapping(cfg.get("adjustments"), "adjustments")
        adjustments = Adjustments(
            brightness=_num(adjustments_cfg.get("brightness"), 100.0, "brightness"),
            contrast=_num(adjustments_cfg.get("contrast"), 100.0, "contrast"),
            saturation=_num(adjustments_cfg.get("saturation"), 100.0, "saturation"),
            blur=_num(adjustments_cfg.get("blur"), 0.0, "blur"),
        ).clamped()

        crop_area = None
        crop_cfg = _mapping(cfg.get("cropArea"), "cropArea")
        if crop_cfg:
            try:
                crop_area = clamp_crop_area(
                    PercentRect(
                        float(crop_cfg.get("x", 0.0)),
                        float(crop_cfg.get("y", 0.0)),
                        float(crop_cfg.get("width", 100.0)),
                        float(crop_cfg.get("height", 100.0)),
                    ),
                    min_size=min_crop_percent,
                )
            except (InvalidGeometryError, TypeError, ValueError) as exc:
                logger.warning(f"Dropping unusable cropArea {crop_cfg!r}: {exc}")

        position_cfg = _mapping(cfg.get("position"), "position")
        elements: list[Element] = []
        elements_cfg = cfg.get("textElements") or []
        if not isinstance(elements_cfg, list):
            logger.warning(f"Ignoring malformed textElements={elements_cfg!r}, expected a list")
            elements_cfg = []
        for element_cfg in elements_cfg:
            if not isinstance(element_cfg, dict):
                logger.warning(f"Skipping malformed element {element_cfg!r}")
                continue
            if element_cfg.get("type", "text") == "logo":
                elements.append(LogoElement.from_config(element_cfg))
            else:
                elements.append(TextElement.from_config(element_cfg))

        rgb_effect = None
        rgb_cfg = _mapping(cfg.get("rgbEffect"), "rgbEffect")
        if rgb_cfg:
            rgb_effect = RGBEffect(
                mode=_choice(rgb_cfg.get("mode"), RGB_MODES, "static", "rgbEffect.mode"),  # type: ignore[arg-type]
                color=str(rgb_cfg.get("color") or "#ff0000"),
                brightness=_clamp(
                    _num(rgb_cfg.get("brightnessPercent", rgb_cfg.get("brightness")), 80.0, "rgb brightness"),
                    0.0,
                    100.0,
                ),
            )

        canvas_size = None
        canvas_cfg = cfg.get("canvasSize")
        if canvas_cfg:
            width = height = 0.0
            if isinstance(canvas_cfg, (list, tuple)) and len(canvas_cfg) == 2:
                width = _num(canvas_cfg[0], 0.0, "canvasSize.width")
                height = _num(canvas_cfg[1], 0.0, "canvasSize.height")
            elif isinstance(canvas_cfg, dict):
                width = _num(canvas_cfg.get("width"), 0.0, "canvasSize.width")
                height = _num(canvas_cfg.get("height"), 0.0, "canvasSize.height")
            if width >= 1 and height >= 1:
                canvas_size = (int(round(width)), int(round(height)))
            else:
                logger.warning(f"Ignoring unusable canvasSize {canvas_cfg!r}")

        return cls(
            base_image=_source(cfg.get("baseImage"), "baseImage"),
            adjustments=adjustments,
            filter_id=_choice(cfg.get("filterId"), FILTER_IDS, "none", "filterId"),
            crop_area=crop_area,
            zoom=_clamp(_num(cfg.get("zoom"), 1.0, "zoom"), *ZOOM_RANGE),
            position=Point(
                x=_num(position_cfg.get("x"), 0.0, "position.x"),
                y=_num(position_cfg.get("y"), 0.0, "position.y"),
            ),
            template_overlay=_source(cfg.get("templateOverlay"), "templateOverlay"),
            text_elements=tuple(elements),
            rgb_effect=rgb_effect,
            product_type=_choice(cfg.get("productType"), PRODUCT_TYPES, "standard", "productType"),  # type: ignore[arg-type]
            canvas_size=canvas_size,
            product_size=cfg.get("productSize") or None,
        )


def load_layer_state(path: str, min_crop_percent: float = 10.0) -> LayerState:
    """Read a configuration record (a bare record or a cart item with a ``configuration`` key)."""
    cfg = read_json(path)
    if not isinstance(cfg, dict):
        raise ValueError(f"Expected a JSON object in {path}, got {type(cfg).__name__}")
    if isinstance(cfg.get("configuration"), dict):
        cfg = cfg["configuration"]
    return LayerState.from_config(cfg, min_crop_percent=min_crop_percent)


def save_layer_state(state: LayerState, path: str, indent: int | None = 2) -> None:
    save_json(state.to_config(), path, indent=indent)
