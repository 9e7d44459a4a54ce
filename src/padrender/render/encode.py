"""Encoding of rendered canvases to image data URLs."""

import base64
import io
import logging

from PIL import Image

from padrender.errors import EncodeError
from padrender.render.canvas import parse_color

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = {
    "png": ("PNG", "image/png"),
    "jpeg": ("JPEG", "image/jpeg"),
}


def flatten(image: Image.Image, background: str = "#ffffff") -> Image.Image:
    """Composite an RGBA image over an opaque background colour and drop alpha."""
    base = Image.new("RGBA", image.size, parse_color(background, "#ffffff")[:3] + (255,))
    return Image.alpha_composite(base, image.convert("RGBA")).convert("RGB")


def encode_image(image: Image.Image, fmt: str = "png", quality: int = 95, background: str = "#ffffff") -> bytes:
    """Encode ``image`` to PNG (alpha kept) or JPEG (flattened on ``background``).

    Raises:
        ValueError: If ``fmt`` is not a known output format.
        EncodeError: If the encoder fails.
    """
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format: {fmt}. Available: {list(OUTPUT_FORMATS.keys())}")
    pil_format, _ = OUTPUT_FORMATS[fmt]
    buffer = io.BytesIO()
    try:
        if pil_format == "JPEG":
            flatten(image, background).save(buffer, format="JPEG", quality=quality)
        else:
            image.save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Failed to encode {image.size[0]}x{image.size[1]} image as {fmt}: {exc}") from exc
    return buffer.getvalue()


def encode_data_url(image: Image.Image, fmt: str = "png", quality: int = 95, background: str = "#ffffff") -> str:
    data = encode_image(image, fmt=fmt, quality=quality, background=background)
    _, mime = OUTPUT_FORMATS[fmt]
    return f"data:{mime};base64," + base64.b64encode(data).decode("ascii")
