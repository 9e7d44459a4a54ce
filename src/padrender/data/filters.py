"""Named creative filter presets.

Each preset is a fixed chain of CSS filter primitives; presets take no parameters.
"""

FilterStep = tuple[str, float]

FILTER_PRESETS: dict[str, tuple[FilterStep, ...]] = {
    "none": (),
    "grayscale": (("grayscale", 1.0),),
    "sepia": (("sepia", 1.0),),
    "vintage": (("sepia", 0.5), ("contrast", 1.2), ("brightness", 0.9)),
    "cool": (("hue-rotate", 180.0), ("saturate", 1.2)),
    "warm": (("sepia", 0.3), ("saturate", 1.4), ("brightness", 1.1)),
    "dramatic": (("contrast", 1.5), ("brightness", 0.8), ("saturate", 1.2)),
    "fade": (("opacity", 0.8), ("contrast", 0.9)),
    "high-contrast": (("contrast", 2.0), ("brightness", 0.9)),
    "low-saturation": (("saturate", 0.5),),
}

FILTER_IDS = tuple(FILTER_PRESETS.keys())


def get_filter_chain(filter_id: str) -> tuple[FilterStep, ...]:
    """Return the primitive chain of a preset.

    Raises:
        ValueError: If ``filter_id`` is not a known preset.
    """
    if filter_id not in FILTER_PRESETS:
        raise ValueError(f"Unknown filter: {filter_id}. Available: {list(FILTER_IDS)}")
    return FILTER_PRESETS[filter_id]


def step_to_css(step: FilterStep) -> str:
    name, amount = step
    if name == "hue-rotate":
        return f"hue-rotate({amount:g}deg)"
    if name == "blur":
        return f"blur({amount:g}px)"
    return f"{name}({amount * 100:g}%)"
