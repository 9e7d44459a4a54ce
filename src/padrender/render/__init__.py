from padrender.render.canvas import CANVAS_BACKENDS, BaseCanvas, PillowCanvas, build_canvas
from padrender.render.compositor import Compositor
from padrender.render.driver import PreviewResult, RenderDriver, RenderResult, RenderStatus
from padrender.render.encode import encode_data_url, encode_image
from padrender.render.text import FontResolver, render_text_tile

__all__ = [
    "BaseCanvas",
    "CANVAS_BACKENDS",
    "Compositor",
    "FontResolver",
    "PillowCanvas",
    "PreviewResult",
    "RenderDriver",
    "RenderResult",
    "RenderStatus",
    "build_canvas",
    "encode_data_url",
    "encode_image",
    "render_text_tile",
]
