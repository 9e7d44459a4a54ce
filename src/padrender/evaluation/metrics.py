import numpy as np
from PIL import Image
from skimage.metrics import structural_similarity as ssim


def _as_float(image: np.ndarray | Image.Image, mode: str | None = None) -> np.ndarray:
    if isinstance(image, Image.Image):
        image = np.asarray(image.convert(mode) if mode else image)
    return np.asarray(image, dtype=np.float64)


class MAE:
    """Mean Absolute Error metric."""

    def __init__(self, normalize_value: float = 255.0) -> None:
        self.normalize_value = normalize_value

    def __call__(self, x: np.ndarray | Image.Image, y: np.ndarray | Image.Image) -> float:
        x = _as_float(x) / self.normalize_value
        y = _as_float(y) / self.normalize_value
        return float(np.mean(np.abs(x - y)))


class SSIM:
    """Structural Similarity Index metric over the RGB channels."""

    def __init__(self, data_range: float = 1.0, normalize_value: float = 255.0) -> None:
        self.data_range = data_range
        self.normalize_value = normalize_value

    def __call__(self, x: np.ndarray | Image.Image, y: np.ndarray | Image.Image) -> float:
        x = _as_float(x, "RGB") / self.normalize_value
        y = _as_float(y, "RGB") / self.normalize_value
        if x.ndim == 2:
            return float(ssim(x, y, data_range=self.data_range))
        return float(ssim(x[..., :3], y[..., :3], data_range=self.data_range, channel_axis=-1))


class RGBL1:
    """RGB L1 distance metric with optional alpha weighting."""

    def __init__(self, normalize_value: float = 255, weight_by_alpha: bool = True, eps: float = 1e-8) -> None:
        self.normalize_value = normalize_value
        self.weight_by_alpha = weight_by_alpha
        self.eps = eps

    def __call__(self, rgba_pr: np.ndarray | Image.Image, rgba_gt: np.ndarray | Image.Image) -> float:
        """Calculate RGB L1 distance between RGBA renders.

        Args:
            rgba_pr: Rendered RGBA image (H, W, 4)
            rgba_gt: Reference RGBA image (H, W, 4)

        Returns:
            RGB L1 distance value
        """
        rgba_pr = _as_float(rgba_pr, "RGBA") / self.normalize_value
        rgba_gt = _as_float(rgba_gt, "RGBA") / self.normalize_value

        if self.weight_by_alpha:
            alpha_mask = rgba_gt[..., 3] > 0
            return float(
                (np.abs(rgba_pr[..., :3] - rgba_gt[..., :3]).mean(-1) * alpha_mask).sum() / (alpha_mask.sum() + self.eps)
            )
        return float(np.abs(rgba_pr[..., :3] - rgba_gt[..., :3]).mean())


def calc_soft_iou(mask1: np.ndarray, mask2: np.ndarray) -> float:
    """Calculate soft IoU between two masks."""
    intersection = np.minimum(mask1, mask2).sum()
    union = np.maximum(mask1, mask2).sum()
    return float(intersection / union) if union > 0 else 0.0


class AlphaIoU:
    """Alpha channel Intersection over Union metric."""

    def __init__(self, normalize_value: float = 255) -> None:
        self.normalize_value = normalize_value

    def __call__(self, rgba_pr: np.ndarray | Image.Image, rgba_gt: np.ndarray | Image.Image) -> float:
        rgba_pr = _as_float(rgba_pr, "RGBA") / self.normalize_value
        rgba_gt = _as_float(rgba_gt, "RGBA") / self.normalize_value
        return calc_soft_iou(rgba_pr[..., 3], rgba_gt[..., 3])


METRICS = {
    "MAE": MAE,
    "SSIM": SSIM,
    "RGBL1": RGBL1,
    "AlphaIoU": AlphaIoU,
}


def build_metric_cfg(name: str, params: dict) -> object:
    """Build a single metric instance from name and parameters."""
    if name in METRICS:
        return METRICS[name](**params)
    raise ValueError(f"Unknown metric: {name}. Available: {list(METRICS.keys())}")


def build_metrics_cfg(cfg: dict) -> dict:
    """Build metrics configuration from dictionary."""
    metrics = {}
    for name, params in cfg.items():
        metrics[name] = build_metric_cfg(name, params or {})
    return metrics


def compare_images(
    rendered: np.ndarray | Image.Image,
    reference: np.ndarray | Image.Image,
    metrics: dict | None = None,
) -> dict[str, float]:
    """Score a render against a reference image with every metric in ``metrics``.

    Raises:
        ValueError: If the two images differ in size.
    """
    rendered_size = rendered.size if isinstance(rendered, Image.Image) else rendered.shape[1::-1]
    reference_size = reference.size if isinstance(reference, Image.Image) else reference.shape[1::-1]
    if tuple(rendered_size) != tuple(reference_size):
        raise ValueError(f"Image sizes differ: {tuple(rendered_size)} vs {tuple(reference_size)}")
    metrics = metrics if metrics is not None else build_metrics_cfg({name: {} for name in METRICS})
    return {name: metric(rendered, reference) for name, metric in metrics.items()}
