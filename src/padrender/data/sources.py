"""
Raster source resolution.

A design references images in several forms: inline ``data:image/...;base64,...`` payloads
written by the browser editor, remote ``http(s)`` URLs, local paths, raw bytes or an already
decoded PIL image. Every pipeline stage goes through :func:`load_raster` so the forms are
interchangeable.
"""

import base64
import binascii
import hashlib
import io
import logging
import os
from typing import Union
from urllib.parse import unquote, unquote_to_bytes, urlparse

import requests
from PIL import Image, UnidentifiedImageError

from padrender.errors import DecodeError

logger = logging.getLogger(__name__)

RasterSource = Union[str, bytes, Image.Image]

DATA_URL_PREFIX = "data:"
DEFAULT_TIMEOUT_S = 10.0


def describe_source(source: RasterSource | None) -> str:
    """Short printable form of a source for log messages."""
    if source is None:
        return "<none>"
    if isinstance(source, Image.Image):
        return f"<PIL.Image {source.mode} {source.size[0]}x{source.size[1]}>"
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    if source.startswith(DATA_URL_PREFIX):
        return f"{source[:32]}...({len(source)} chars)"
    return source


def source_key(source: RasterSource) -> str:
    """Stable identity of a source, used as a cache key.

    Strings hash their full text so two different inline payloads never collide, bytes hash
    their content and PIL images hash mode, size and pixel data.
    """
    digest = hashlib.sha1()
    if isinstance(source, Image.Image):
        digest.update(f"{source.mode}:{source.size}".encode())
        digest.update(source.tobytes())
    elif isinstance(source, bytes):
        digest.update(source)
    elif isinstance(source, str):
        digest.update(source.encode("utf-8"))
    else:
        raise TypeError(f"Expected str, bytes or PIL.Image, got {type(source)}")
    return digest.hexdigest()


def decode_data_url(url: str) -> bytes:
    """Decode the payload of a ``data:`` URL."""
    try:
        header, payload = url.split(",", 1)
    except ValueError as exc:
        raise DecodeError("Malformed data URL: missing ',' separator", describe_source(url)) from exc
    if ";base64" in header:
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Invalid base64 payload: {exc}", describe_source(url)) from exc
    return unquote_to_bytes(payload)


def _fetch_bytes(source: str, timeout: float) -> bytes:
    if source.startswith(DATA_URL_PREFIX):
        return decode_data_url(source)

    parsed = urlparse(source)
    if parsed.scheme in ("http", "https"):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DecodeError(f"Failed to fetch {source}: {exc}", source) from exc
        return response.content

    path = unquote(parsed.path) if parsed.scheme == "file" else source
    if not os.path.isfile(path):
        raise DecodeError(f"Image file not found: {path}", source)
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise DecodeError(f"Cannot read image file {path}: {exc}", source) from exc


def load_raster(source: RasterSource, timeout: float = DEFAULT_TIMEOUT_S) -> Image.Image:
    """Load any supported source as a fully decoded RGBA image.

    Args:
        source: Data URL, http(s) URL, ``file://`` URL, filesystem path, encoded bytes or PIL image.
        timeout: Timeout in seconds for remote fetches.

    Returns:
        A new RGBA image; the caller owns it and may mutate it.

    Raises:
        DecodeError: If the source cannot be fetched or is not a decodable image.
    """
    if isinstance(source, Image.Image):
        return source.convert("RGBA")
    if isinstance(source, bytes):
        data = source
    elif isinstance(source, str):
        if not source:
            raise DecodeError("Empty image reference", "")
        data = _fetch_bytes(source, timeout)
    else:
        raise TypeError(f"Expected str, bytes or PIL.Image, got {type(source)}")

    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return image.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeError(f"Cannot decode image: {exc}", describe_source(source)) from exc


def inline_source(source: RasterSource) -> str:
    """Serialise a source for JSON: strings pass through, images and bytes become PNG data URLs."""
    if isinstance(source, str):
        return source
    if isinstance(source, bytes):
        source = load_raster(source)
    buffer = io.BytesIO()
    source.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
