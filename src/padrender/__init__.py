from padrender.config import RenderConfig, load_config
from padrender.data.layer_state import LayerState, load_layer_state, save_layer_state
from padrender.errors import DecodeError, EncodeError, InvalidGeometryError, PadRenderError
from padrender.render.compositor import Compositor
from padrender.render.driver import PreviewResult, RenderDriver, RenderResult, RenderStatus

__version__ = "0.1.0"

__all__ = [
    "Compositor",
    "DecodeError",
    "EncodeError",
    "InvalidGeometryError",
    "LayerState",
    "PadRenderError",
    "PreviewResult",
    "RenderConfig",
    "RenderDriver",
    "RenderResult",
    "RenderStatus",
    "load_config",
    "load_layer_state",
    "save_layer_state",
]
