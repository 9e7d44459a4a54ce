"""
Render driver.

Runs the full pipeline for a :class:`LayerState` in two modes:

- ``request_preview``: debounced. Requests arriving within ``preview_debounce_ms`` of each
  other are coalesced, and only the last one renders, at ``preview_scale`` of the output size.
  The pixels are produced by the same compositor as the final render, so at scale 1 a preview
  is identical to the final image.
- ``render_final``: synchronous full-resolution render, encoded to a data URL.

A base image that is missing or cannot be decoded yields a placeholder result. Encode failures
propagate, and :attr:`RenderDriver.last_result` keeps the previous good result.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from PIL import Image

from padrender.config import RenderConfig
from padrender.data.layer_state import LayerState
from padrender.data.sizes import canvas_size_for
from padrender.data.sources import RasterSource, describe_source
from padrender.effects.adjustments import css_filter
from padrender.effects.background import remove_background_to_data_url
from padrender.errors import DecodeError, PadRenderError
from padrender.geometry import validate_canvas_size
from padrender.render.compositor import Compositor
from padrender.render.encode import encode_data_url

logger = logging.getLogger(__name__)


class RenderStatus(str, Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    RENDERING_FINAL = "rendering_final"


@dataclass(frozen=True)
class PreviewResult:
    image: Image.Image
    css_filter: str
    request_id: int
    placeholder: bool = False


@dataclass(frozen=True)
class RenderResult:
    data_url: str
    image: Image.Image
    request_id: int
    placeholder: bool = False


class RenderDriver:
    def __init__(self, config: RenderConfig | None = None, compositor: Compositor | None = None) -> None:
        self.config = config or RenderConfig()
        self.compositor = compositor or Compositor(self.config)
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending_preview: int | None = None
        self._request_counter = 0
        self._status = RenderStatus.IDLE
        self._last_result: RenderResult | None = None

    @property
    def status(self) -> RenderStatus:
        return self._status

    @property
    def last_result(self) -> RenderResult | None:
        """Most recent successful final render."""
        return self._last_result

    def _next_request_id(self) -> int:
        self._request_counter += 1
        return self._request_counter

    def resolve_canvas_size(self, state: LayerState) -> tuple[int, int]:
        """Output size: ``state.canvas_size``, else ``state.product_size`` via the size table, else the default."""
        if state.canvas_size is not None:
            return validate_canvas_size(state.canvas_size)
        if state.product_size is not None:
            try:
                return canvas_size_for(state.product_size, self.config.px_per_mm)
            except ValueError as exc:
                logger.warning(f"{exc}; using default canvas size")
        return validate_canvas_size(tuple(self.config.default_canvas_size))  # type: ignore[arg-type]

    def render_image(
        self,
        state: LayerState,
        canvas_size: tuple[int, int] | None = None,
        scale: float = 1.0,
    ) -> tuple[Image.Image, bool]:
        """Run the compositor and return ``(image, is_placeholder)`` without encoding."""
        design_size = self.resolve_canvas_size(state)
        width, height = validate_canvas_size(canvas_size) if canvas_size is not None else design_size
        target = (max(1, round(width * scale)), max(1, round(height * scale)))
        try:
            working = self.compositor.build_working_raster(state)
        except DecodeError as exc:
            logger.warning(f"Base image {describe_source(state.base_image)} unavailable, rendering placeholder: {exc}")
            return self.compositor.render_placeholder(target), True
        return self.compositor.composite(working, state, target, design_size=design_size), False

    def render_preview(self, state: LayerState, scale: float | None = None, request_id: int = 0) -> PreviewResult:
        """Render a preview synchronously; :meth:`request_preview` is the debounced entry point."""
        scale = self.config.preview_scale if scale is None else scale
        image, placeholder = self.render_image(state, scale=scale)
        return PreviewResult(image, css_filter(state.adjustments, state.filter_id), request_id, placeholder)

    def request_preview(
        self,
        state: LayerState,
        callback: Callable[[PreviewResult], None],
        delay_ms: int | None = None,
    ) -> int:
        """Schedule a debounced preview, replacing any pending one.

        Args:
            state: Snapshot to render.
            callback: Called from the timer thread with the result, unless superseded first.
            delay_ms: Quiet period before rendering; defaults to ``preview_debounce_ms``.

        Returns:
            The request id passed back in :class:`PreviewResult`.
        """
        delay_ms = self.config.preview_debounce_ms if delay_ms is None else delay_ms
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            request_id = self._next_request_id()
            timer = threading.Timer(delay_ms / 1000.0, self._run_preview, args=(request_id, state, callback))
            timer.daemon = True
            self._timer = timer
            self._pending_preview = request_id
            self._status = RenderStatus.PREVIEWING
            timer.start()
        logger.debug(f"Preview {request_id} scheduled in {delay_ms}ms")
        return request_id

    def cancel_preview(self) -> bool:
        """Drop the pending preview timer. Returns True if one was pending."""
        with self._lock:
            pending = self._timer is not None
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending_preview = None
            if self._status == RenderStatus.PREVIEWING:
                self._status = RenderStatus.IDLE
        return pending

    def _run_preview(self, request_id: int, state: LayerState, callback: Callable[[PreviewResult], None]) -> None:
        with self._lock:
            if request_id != self._pending_preview:
                return
        try:
            result = self.render_preview(state, request_id=request_id)
        except PadRenderError:
            logger.exception(f"Preview {request_id} failed")
            result = None
        with self._lock:
            if request_id != self._pending_preview:
                logger.debug(f"Dropping stale preview {request_id}")
                return
            self._timer = None
            self._pending_preview = None
            self._status = RenderStatus.IDLE
        if result is not None:
            callback(result)

    def render_final(
        self,
        state: LayerState,
        fmt: str | None = None,
        canvas_size: tuple[int, int] | None = None,
    ) -> RenderResult:
        """Render and encode the exact output image.

        Args:
            state: Snapshot to render.
            fmt: ``png`` or ``jpeg``; defaults to ``output_format``.
            canvas_size: Output size override; defaults to :meth:`resolve_canvas_size`.

        Returns:
            The encoded result. A missing base image gives ``placeholder=True``.

        Raises:
            EncodeError: If encoding fails; ``last_result`` is left unchanged.
        """
        fmt = fmt or self.config.output_format
        with self._lock:
            request_id = self._next_request_id()
            self._status = RenderStatus.RENDERING_FINAL
        try:
            image, placeholder = self.render_image(state, canvas_size=canvas_size)
            data_url = encode_data_url(
                image, fmt=fmt, quality=self.config.jpeg_quality, background=self.config.background_color
            )
        finally:
            with self._lock:
                self._status = RenderStatus.PREVIEWING if self._pending_preview is not None else RenderStatus.IDLE

        result = RenderResult(data_url, image, request_id, placeholder)
        with self._lock:
            if self._last_result is None or request_id > self._last_result.request_id:
                self._last_result = result
        logger.info(f"Final render {request_id}: {image.size[0]}x{image.size[1]} {fmt}{' (placeholder)' if placeholder else ''}")
        return result

    def select_template(self, source: RasterSource, tolerance: float | None = None) -> RasterSource:
        """Background-removed template as a PNG data URL (cached), or ``source`` if it cannot be loaded."""
        tolerance = self.config.background_tolerance if tolerance is None else tolerance
        return remove_background_to_data_url(source, tolerance=tolerance, timeout=self.config.source_timeout_s)

    def close(self) -> None:
        self.cancel_preview()
