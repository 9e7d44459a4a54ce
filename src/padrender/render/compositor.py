"""
Layer compositor.

Draws one design onto a canvas in a fixed order:

1. the working raster (base image after adjustments, filter and crop), placed per zoom/position;
2. the template overlay, stretched full-bleed;
3. text and logo elements in sequence order, later elements on top;
4. the RGB edge band, for ``rgb`` products only.

Secondary assets (overlay, logos, font files) that fail to load are skipped with a warning so
that the remaining layers still render.
"""

import logging

from PIL import Image

from padrender.config import RenderConfig
from padrender.data.layer_state import (
    ZOOM_RANGE,
    Element,
    LayerState,
    LogoElement,
    TextElement,
)
from padrender.data.sources import describe_source, load_raster
from padrender.effects.adjustments import apply_chain, build_chain
from padrender.effects.crop import apply_crop
from padrender.errors import DecodeError, InvalidGeometryError
from padrender.geometry import PixelBox, base_image_box, centered_box, percent_to_px, validate_canvas_size
from padrender.render.canvas import BaseCanvas, build_canvas, parse_color, scale_alpha
from padrender.render.rgb import draw_rgb_band
from padrender.render.text import FontResolver, render_text_tile

logger = logging.getLogger(__name__)


class Compositor:
    """Pure function of (working raster, LayerState, canvas size) to an RGBA image.

    Args:
        config: Render configuration; defaults are used when omitted.
    """

    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config or RenderConfig()
        self.fonts = FontResolver(self.config.font_dirs, self.config.default_font)

    def build_working_raster(self, state: LayerState) -> Image.Image:
        """Decode the base image and run the adjustment/filter and crop stages on it.

        Raises:
            DecodeError: If there is no base image or it cannot be decoded.
        """
        if state.base_image is None:
            raise DecodeError("Design has no base image")
        base = load_raster(state.base_image, timeout=self.config.source_timeout_s)
        adjusted = apply_chain(base, build_chain(state.adjustments, state.filter_id))
        return apply_crop(adjusted, state.crop_area, min_size=self.config.min_crop_percent)

    def render_placeholder(self, canvas_size: tuple[int, int]) -> Image.Image:
        size = validate_canvas_size(canvas_size)
        return Image.new("RGBA", size, parse_color(self.config.placeholder_color, "#e5e7eb"))

    def composite(
        self,
        working: Image.Image,
        state: LayerState,
        canvas_size: tuple[int, int],
        design_size: tuple[int, int] | None = None,
    ) -> Image.Image:
        """Draw every layer of ``state`` over ``working`` at ``canvas_size``.

        Args:
            working: Working raster from :meth:`build_working_raster`.
            state: Design snapshot; it is only read.
            canvas_size: Output size (width, height) in pixels.
            design_size: Size at which the element pixel measures (font size, stroke, shadow)
                were authored. Those measures are scaled by ``canvas_size / design_size``;
                ``None`` means they are used as is.

        Returns:
            The flattened RGBA image.
        """
        size = validate_canvas_size(canvas_size)
        scale = self._element_scale(size, design_size)
        canvas = build_canvas(self.config.canvas_backend, size, self.config.background_color)

        self._draw_base(canvas, working, state)
        if state.template_overlay is not None:
            self._draw_overlay(canvas, state)
        for index, element in enumerate(state.text_elements):
            self._draw_element(canvas, element, scale, index)
        if state.rgb_enabled:
            draw_rgb_band(canvas, state.rgb_effect, ratio=self.config.rgb_band_ratio)  # type: ignore[arg-type]

        return canvas.snapshot()

    def _element_scale(self, size: tuple[int, int], design_size: tuple[int, int] | None) -> float:
        if design_size is None:
            return 1.0
        design_w, design_h = validate_canvas_size(design_size)
        return min(size[0] / design_w, size[1] / design_h)

    def _draw_base(self, canvas: BaseCanvas, working: Image.Image, state: LayerState) -> None:
        zoom = min(max(state.zoom, ZOOM_RANGE[0]), ZOOM_RANGE[1])
        try:
            box = base_image_box(
                canvas.size, working.size, zoom, (state.position.x, state.position.y), fit=self.config.fit
            )
        except InvalidGeometryError as exc:
            logger.warning(f"Unusable zoom/position ({state.zoom}, {state.position}): {exc}; drawing full-bleed")
            box = base_image_box(canvas.size, working.size, fit=self.config.fit)
        canvas.draw_image(working, box)

    def _draw_overlay(self, canvas: BaseCanvas, state: LayerState) -> None:
        try:
            overlay = load_raster(state.template_overlay, timeout=self.config.source_timeout_s)  # type: ignore[arg-type]
        except DecodeError as exc:
            logger.warning(f"Skipping template overlay {describe_source(state.template_overlay)}: {exc}")
            return
        canvas.draw_image(overlay, PixelBox(0.0, 0.0, float(canvas.size[0]), float(canvas.size[1])))

    def _draw_element(self, canvas: BaseCanvas, element: Element, scale: float, index: int) -> None:
        if not element.visible:
            return
        try:
            if isinstance(element, LogoElement):
                self._draw_logo(canvas, element)
            elif isinstance(element, TextElement):
                self._draw_text(canvas, element, scale)
            else:
                raise TypeError(f"Unsupported element type: {type(element)}")
        except DecodeError as exc:
            logger.warning(f"Skipping element {index} ({element.id or type(element).__name__}): {exc}")
        except InvalidGeometryError as exc:
            logger.warning(f"Skipping element {index} with unusable geometry: {exc}")

    def _draw_text(self, canvas: BaseCanvas, element: TextElement, scale: float) -> None:
        anchor = percent_to_px(element.x, element.y, canvas.size)
        tile = render_text_tile(element, self.fonts, scale=scale)
        if tile is None:
            return
        canvas.draw_centered(tile, anchor, element.rotation)

    def _draw_logo(self, canvas: BaseCanvas, element: LogoElement) -> None:
        if element.opacity <= 0 or element.width <= 0 or element.height <= 0:
            return
        box = centered_box(element.x, element.y, element.width, element.height, canvas.size)
        left, top, right, bottom = box.rounded()
        logo = load_raster(element.source, timeout=self.config.source_timeout_s)
        tile = logo.resize((right - left, bottom - top), resample=Image.Resampling.BILINEAR)
        canvas.draw_centered(scale_alpha(tile, element.opacity / 100.0), box.center, element.rotation)
