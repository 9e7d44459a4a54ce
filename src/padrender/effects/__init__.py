"""Raster stages applied before compositing: adjustments/filters, crop and template keying."""

from padrender.effects.adjustments import PRIMITIVES, apply_adjustments, apply_chain, build_chain, css_filter
from padrender.effects.background import remove_background, remove_background_to_data_url
from padrender.effects.crop import CropInteraction, apply_crop, commit_crop

__all__ = [
    "CropInteraction",
    "PRIMITIVES",
    "apply_adjustments",
    "apply_chain",
    "apply_crop",
    "build_chain",
    "commit_crop",
    "css_filter",
    "remove_background",
    "remove_background_to_data_url",
]
