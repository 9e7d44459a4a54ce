from dataclasses import dataclass


@dataclass(frozen=True)
class ProductSize:
    label: str
    width_mm: int
    height_mm: int


# Named "<short>x<long>" in mm; mats are printed landscape so the long edge is the width.
PRODUCT_SIZES: dict[str, ProductSize] = {
    "200x240": ProductSize("200×240mm", 240, 200),
    "300x350": ProductSize("300×350mm", 350, 300),
    "300x600": ProductSize("300×600mm", 600, 300),
    "300x700": ProductSize("300×700mm", 700, 300),
    "300x800": ProductSize("300×800mm", 800, 300),
    "350x600": ProductSize("350×600mm", 600, 350),
    "400x600": ProductSize("400×600mm", 600, 400),
    "400x700": ProductSize("400×700mm", 700, 400),
    "400x800": ProductSize("400×800mm", 800, 400),
    "400x900": ProductSize("400×900mm", 900, 400),
    "500x800": ProductSize("500×800mm", 800, 500),
    "500x1000": ProductSize("500×1000mm", 1000, 500),
}


def canvas_size_for(name: str, px_per_mm: float = 1.0) -> tuple[int, int]:
    """Pixel canvas size for a named product size.

    Raises:
        ValueError: If the size name is not in :data:`PRODUCT_SIZES`.
    """
    if name not in PRODUCT_SIZES:
        available = list(PRODUCT_SIZES.keys())
        raise ValueError(f"Unknown product size: {name}. Available: {available}")
    size = PRODUCT_SIZES[name]
    return max(1, round(size.width_mm * px_per_mm)), max(1, round(size.height_mm * px_per_mm))
