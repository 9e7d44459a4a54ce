"""Error taxonomy for the rendering pipeline."""


class PadRenderError(Exception):
    """Base class for all rendering errors."""


class DecodeError(PadRenderError):
    """A referenced raster could not be loaded or decoded."""

    def __init__(self, message: str, source_repr: str | None = None) -> None:
        super().__init__(message)
        self.source_repr = source_repr


class InvalidGeometryError(PadRenderError, ValueError):
    """A crop, position or size value cannot be represented even after clamping."""


class EncodeError(PadRenderError):
    """The output raster could not be encoded."""
