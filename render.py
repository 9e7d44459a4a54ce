import argparse
import logging
import os
import os.path as osp
from glob import glob

from PIL import Image
from tqdm import tqdm

from padrender.config import config_to_dict, load_config
from padrender.data.layer_state import load_layer_state
from padrender.data.sources import decode_data_url
from padrender.evaluation.metrics import compare_images
from padrender.render.driver import RenderDriver
from padrender.utils.io import save_json, save_yaml
from padrender.utils.log import setup_logging

logger = logging.getLogger(__name__)

EXTENSIONS = {"png": "png", "jpeg": "jpg"}


def collect_inputs(inputs: list[str]) -> list[str]:
    """Expand design file arguments: a single file, a directory of ``*.json`` or a glob pattern."""
    if len(inputs) == 1:
        if osp.isfile(inputs[0]):
            paths = inputs
        elif osp.isdir(inputs[0]):
            paths = sorted(glob(osp.join(inputs[0], "*.json")))
        else:
            paths = sorted(glob(inputs[0]))
    else:
        paths = inputs

    if not paths:
        raise ValueError(f"No files found matching pattern: {inputs}")
    return paths


def render_designs(args: argparse.Namespace) -> None:
    """Run final-mode renders for every design file."""
    config = load_config(args.config, args.set)
    driver = RenderDriver(config)
    fmt = args.format or config.output_format

    paths = collect_inputs(args.input)
    os.makedirs(args.output_dir, exist_ok=True)
    save_yaml(config_to_dict(config), osp.join(args.output_dir, "config.yaml"))

    scores = {}
    failed = []
    for path in tqdm(paths, desc="Rendering"):
        fn = osp.splitext(osp.basename(path))[0]
        state = load_layer_state(path, min_crop_percent=config.min_crop_percent)
        if args.size:
            state = state.replace(product_size=args.size, canvas_size=None)

        result = driver.render_final(state, fmt=fmt)
        if result.placeholder:
            failed.append(fn)
        out_path = osp.join(args.output_dir, f"{fn}.{EXTENSIONS[fmt]}")
        with open(out_path, "wb") as f:
            f.write(decode_data_url(result.data_url))
        logger.info(f"Saved {out_path}")

        if args.reference_dir:
            ref_path = osp.join(args.reference_dir, f"{fn}.png")
            if not osp.isfile(ref_path):
                logger.warning(f"No reference for {fn} in {args.reference_dir}")
                continue
            try:
                reference = Image.open(ref_path).convert("RGBA")
                scores[fn] = compare_images(result.image, reference)
            except (OSError, ValueError) as exc:
                logger.warning(f"Cannot compare {fn} against {ref_path}: {exc}")
                continue
            logger.info(f"{fn}: " + ", ".join(f"{k}={v:.4f}" for k, v in scores[fn].items()))

    if scores:
        save_json(scores, osp.join(args.output_dir, "scores.json"), indent=2)
    if failed:
        logger.warning(f"{len(failed)} design(s) rendered as placeholders: {failed}")
    logger.info("Rendering completed!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    # Input/output
    parser.add_argument(
        "--input",
        type=str,
        nargs="+",
        required=True,
        help="Design JSON file(s), directory, or glob pattern. Can specify multiple files.",
    )
    parser.add_argument("--output-dir", type=str, required=True, help="Output directory to save renders")
    parser.add_argument(
        "--format", type=str, default=None, choices=list(EXTENSIONS.keys()), help="Output format (default from config)"
    )
    parser.add_argument("--size", type=str, default=None, help='Product size name overriding the design, e.g. "400x900"')
    # Config
    parser.add_argument("--config", type=str, default=None, help="YAML file overriding the default render config")
    parser.add_argument(
        "--set",
        type=str,
        nargs="*",
        default=None,
        help='Config overrides as key=value, e.g. "px_per_mm=4" "jpeg_quality=90"',
    )
    # Evaluation
    parser.add_argument(
        "--reference-dir", type=str, default=None, help="Directory of reference PNGs to score renders against"
    )
    # Others
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level",
    )
    args = parser.parse_args()

    setup_logging(level=args.log_level, use_tqdm_handler=True)
    render_designs(args)
