"""
Text element rasterisation.

A text element is rendered into a square-centred RGBA tile whose centre is the element's
anchor, so the compositor can rotate it about that anchor and place it in one step. Inside the
tile the drawing order is shadow, outline stroke, then fill.
"""

import logging
import math
import os
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from padrender.data.layer_state import TextElement
from padrender.errors import DecodeError
from padrender.render.canvas import Color, parse_color, scale_alpha

logger = logging.getLogger(__name__)

FONT_FILE_EXTENSIONS = (".ttf", ".otf", ".ttc")
ITALIC_SHEAR = 0.2

_STYLE_SUFFIXES = {
    (False, False): ("", "-Regular", " Regular"),
    (True, False): ("-Bold", " Bold", "bd"),
    (False, True): ("-Italic", " Italic", "-Oblique", "i"),
    (True, True): ("-BoldItalic", " Bold Italic", "-BoldOblique", "bi"),
}

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(frozen=True)
class ResolvedFont:
    font: FontType
    synthetic_bold: bool
    synthetic_italic: bool


def _is_font_file(family: str) -> bool:
    return family.lower().endswith(FONT_FILE_EXTENSIONS) or os.sep in family or "/" in family


class FontResolver:
    """Maps (family, size, bold, italic) to a loaded font.

    Families are looked up as ``<family><style suffix>.ttf`` in the configured font directories
    and then on the system font path. When only the regular face exists, bold and italic are
    synthesised by the renderer. Unknown families fall back to ``default_font`` and finally to
    Pillow's bundled font.
    """

    def __init__(self, font_dirs: list[str] | None = None, default_font: str = "DejaVuSans.ttf") -> None:
        self.font_dirs = list(font_dirs or [])
        self.default_font = default_font
        self._cache: dict[tuple[str, int, bool, bool], ResolvedFont] = {}

    def _try_truetype(self, name: str, size: int) -> ImageFont.FreeTypeFont | None:
        for directory in self.font_dirs + [""]:
            path = os.path.join(directory, name) if directory else name
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                continue
        return None

    def _find_face(self, family: str, size: int, bold: bool, italic: bool) -> ImageFont.FreeTypeFont | None:
        names = {family, family.replace(" ", ""), family.replace(" ", "").lower()}
        for base in sorted(names):
            for suffix in _STYLE_SUFFIXES[(bold, italic)]:
                for ext in (".ttf", ".otf"):
                    font = self._try_truetype(f"{base}{suffix}{ext}", size)
                    if font is not None:
                        return font
        return None

    def resolve(self, family: str, size: int, bold: bool = False, italic: bool = False) -> ResolvedFont:
        """Load a font for a text element.

        Raises:
            DecodeError: If ``family`` names a font file that cannot be loaded.
        """
        size = max(1, int(size))
        key = (family, size, bold, italic)
        if key in self._cache:
            return self._cache[key]

        if _is_font_file(family):
            try:
                resolved = ResolvedFont(ImageFont.truetype(family, size), bold, italic)
            except OSError as exc:
                raise DecodeError(f"Cannot load font file {family}: {exc}", family) from exc
        else:
            styled = self._find_face(family, size, bold, italic) if (bold or italic) else None
            if styled is not None:
                resolved = ResolvedFont(styled, False, False)
            else:
                regular = self._find_face(family, size, False, False)
                if regular is None:
                    regular = self._try_truetype(self.default_font, size)
                if regular is None:
                    logger.debug(f"No font file for {family!r}, using Pillow's bundled font")
                    regular = ImageFont.load_default(size=size)
                resolved = ResolvedFont(regular, bold, italic)

        self._cache[key] = resolved
        return resolved


def gradient_fill(size: tuple[int, int], box: tuple[int, int, int, int], start: Color, end: Color, direction: str) -> Image.Image:
    """Linear gradient image of ``size`` running across ``box`` in the given direction."""
    width, height = size
    left, top, right, bottom = box
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    span_x = max(right - left, 1)
    span_y = max(bottom - top, 1)
    if direction == "vertical":
        t = (ys - top) / span_y
    elif direction == "diagonal":
        t = ((xs - left) / span_x + (ys - top) / span_y) / 2.0
    else:
        t = (xs - left) / span_x
    t = np.clip(t, 0.0, 1.0)[..., None]
    start_arr = np.array(start, dtype=np.float32)
    end_arr = np.array(end, dtype=np.float32)
    pixels = start_arr * (1.0 - t) + end_arr * t
    return Image.fromarray(np.rint(pixels).astype(np.uint8))


def _colored_layer(mask: Image.Image, color: Color) -> Image.Image:
    layer = Image.new("RGBA", mask.size, color)
    alpha = np.asarray(mask, dtype=np.float32) * (color[3] / 255.0)
    layer.putalpha(Image.fromarray(np.rint(alpha).astype(np.uint8)))
    return layer


def _text_mask(size: tuple[int, int], origin: tuple[float, float], text: str, font: FontType, stroke: int) -> Image.Image:
    mask = Image.new("L", size, 0)
    ImageDraw.Draw(mask).multiline_text(
        origin, text, font=font, fill=255, align="center", stroke_width=stroke, stroke_fill=255
    )
    return mask


def render_text_tile(element: TextElement, resolver: FontResolver, scale: float = 1.0) -> Image.Image | None:
    """Rasterise ``element`` into an RGBA tile centred on its anchor.

    Args:
        element: Text element; position and rotation are applied later by the compositor.
        resolver: Font lookup.
        scale: Factor applied to every pixel measure (font size, stroke, shadow), used when
            rendering at a size other than the design's own canvas.

    Returns:
        The tile, or ``None`` when the element draws nothing.

    Raises:
        DecodeError: If the element's font file cannot be loaded.
    """
    if not element.visible or not element.text.strip() or element.opacity <= 0:
        return None

    resolved = resolver.resolve(element.font_family, round(element.font_size * scale), element.bold, element.italic)
    font = resolved.font
    font_px = max(1.0, element.font_size * scale)
    bold_stroke = max(1, round(font_px / 24)) if resolved.synthetic_bold else 0
    outline_stroke = max(1, math.ceil(element.outline.width * scale / 2.0)) if element.outline.enabled else 0
    stroke = bold_stroke + outline_stroke

    measure = ImageDraw.Draw(Image.new("L", (1, 1)))
    bbox = measure.multiline_textbbox((0, 0), element.text, font=font, align="center", stroke_width=stroke)
    text_w, text_h = bbox[2] - bbox[0], bbox[3] - bbox[1]

    shadow = element.shadow
    pad = 2
    if shadow.enabled:
        pad += math.ceil(shadow.blur * scale * 1.5 + max(abs(shadow.offset_x), abs(shadow.offset_y)) * scale)
    if resolved.synthetic_italic:
        pad += math.ceil(ITALIC_SHEAR * text_h / 2.0)
    tile_w = 2 * math.ceil(text_w / 2.0 + pad)
    tile_h = 2 * math.ceil(text_h / 2.0 + pad)
    size = (tile_w, tile_h)
    # Place the ink box so its centre is the tile centre, which is the element anchor.
    origin = (tile_w / 2.0 - (bbox[0] + bbox[2]) / 2.0, tile_h / 2.0 - (bbox[1] + bbox[3]) / 2.0)

    fill_mask = _text_mask(size, origin, element.text, font, bold_stroke)
    body_mask = _text_mask(size, origin, element.text, font, stroke) if outline_stroke else fill_mask

    tile = Image.new("RGBA", size, (0, 0, 0, 0))
    if shadow.enabled:
        shadow_layer = Image.new("RGBA", size, (0, 0, 0, 0))
        offset = (int(round(shadow.offset_x * scale)), int(round(shadow.offset_y * scale)))
        shadow_layer.paste(_colored_layer(body_mask, parse_color(shadow.color)), offset)
        if shadow.blur > 0:
            # Canvas shadowBlur is twice the Gaussian standard deviation.
            shadow_layer = shadow_layer.filter(ImageFilter.GaussianBlur(radius=shadow.blur * scale / 2.0))
        tile = Image.alpha_composite(tile, shadow_layer)

    if outline_stroke:
        tile = Image.alpha_composite(tile, _colored_layer(body_mask, parse_color(element.outline.color, "#ffffff")))

    if element.gradient.enabled:
        ink_box = fill_mask.getbbox() or (0, 0, tile_w, tile_h)
        fill = gradient_fill(
            size,
            ink_box,
            parse_color(element.gradient.from_color),
            parse_color(element.gradient.to_color),
            element.gradient.direction,
        )
        alpha = np.asarray(fill.getchannel("A"), dtype=np.float32) * np.asarray(fill_mask, dtype=np.float32) / 255.0
        fill.putalpha(Image.fromarray(np.rint(alpha).astype(np.uint8)))
    else:
        fill = _colored_layer(fill_mask, parse_color(element.color))
    tile = Image.alpha_composite(tile, fill)

    if resolved.synthetic_italic:
        tile = tile.transform(
            size,
            Image.Transform.AFFINE,
            (1.0, ITALIC_SHEAR, -ITALIC_SHEAR * tile_h / 2.0, 0.0, 1.0, 0.0),
            resample=Image.Resampling.BICUBIC,
        )

    return scale_alpha(tile, element.opacity / 100.0)
