import argparse
import logging
import os
import os.path as osp
from glob import glob

from PIL import Image
from tqdm import tqdm

from padrender.effects.background import DEFAULT_TOLERANCE, remove_background
from padrender.utils.log import setup_logging

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")


def process_templates(args: argparse.Namespace) -> None:
    """Key out the flat background of every template image and save it as PNG."""
    if len(args.input) == 1:
        if osp.isfile(args.input[0]):
            paths = args.input
        elif osp.isdir(args.input[0]):
            paths = sorted(glob(osp.join(args.input[0], "*")))
            paths = [p for p in paths if p.lower().endswith(IMAGE_EXTENSIONS)]
        else:
            paths = sorted(glob(args.input[0]))
    else:
        paths = args.input

    if not paths:
        raise ValueError(f"No files found matching pattern: {args.input}")

    os.makedirs(args.output_dir, exist_ok=True)
    skipped = 0
    for path in tqdm(paths, desc="Removing backgrounds"):
        fn = osp.splitext(osp.basename(path))[0]
        result = remove_background(path, tolerance=args.tolerance)
        if not isinstance(result, Image.Image):
            skipped += 1
            continue
        out_path = osp.join(args.output_dir, f"{fn}.png")
        result.save(out_path)
        logger.info(f"Saved {out_path}")

    logger.info(f"Background removal completed! ({len(paths) - skipped}/{len(paths)} processed)")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--input",
        type=str,
        nargs="+",
        required=True,
        help="Template image file(s), directory, or glob pattern.",
    )
    parser.add_argument("--output-dir", type=str, required=True, help="Output directory for transparent PNGs")
    parser.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_TOLERANCE,
        help="RGB distance under which a pixel counts as background",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level",
    )
    args = parser.parse_args()

    setup_logging(level=args.log_level, use_tqdm_handler=True)
    process_templates(args)
