from .metrics import MAE, SSIM, RGBL1, AlphaIoU, build_metric_cfg, build_metrics_cfg, compare_images

__all__ = [
    "MAE",
    "SSIM",
    "RGBL1",
    "AlphaIoU",
    "build_metric_cfg",
    "build_metrics_cfg",
    "compare_images",
]
