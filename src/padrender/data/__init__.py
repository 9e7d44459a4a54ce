"""Design data model, raster sources and product sizes."""

from padrender.data.filters import FILTER_IDS, FILTER_PRESETS, get_filter_chain
from padrender.data.layer_state import (
    Adjustments,
    CropArea,
    Gradient,
    LayerState,
    LogoElement,
    Outline,
    Point,
    RGBEffect,
    Shadow,
    TextElement,
    load_layer_state,
    save_layer_state,
)
from padrender.data.sizes import PRODUCT_SIZES, ProductSize, canvas_size_for
from padrender.data.sources import RasterSource, describe_source, load_raster, source_key

__all__ = [
    "Adjustments",
    "CropArea",
    "FILTER_IDS",
    "FILTER_PRESETS",
    "Gradient",
    "LayerState",
    "LogoElement",
    "Outline",
    "PRODUCT_SIZES",
    "Point",
    "ProductSize",
    "RGBEffect",
    "RasterSource",
    "Shadow",
    "TextElement",
    "canvas_size_for",
    "describe_source",
    "get_filter_chain",
    "load_layer_state",
    "load_raster",
    "save_layer_state",
    "source_key",
]
