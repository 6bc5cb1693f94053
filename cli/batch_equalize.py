import os
import sys
import logging
import argparse
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

# --- Centralized Logging Configuration ---
# This should be the first thing to run to ensure all modules use the same config.
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)
# ───────────────────────────────────────────

from models.equalization_settings import EqualizationSettings
from pipeline.batch_equalizer import equalize_gallery, EQUALIZED_DIR, OUTPUT_EXT
from pipeline.equalization_pipeline import EqualizationPipeline
from services.image_service import ImageService


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Histogram-equalize every image in a folder.")
    ap.add_argument("--input", default=os.getenv("INPUT_DIR_PATH", "data/input"),
                    help="folder with the images to equalize")
    ap.add_argument("--output", default=EQUALIZED_DIR, help="folder for the equalized images")
    ap.add_argument("--ext", default=OUTPUT_EXT, help="extension of the written images")
    ap.add_argument("--recursive", action="store_true", help="also walk sub-folders")
    ap.add_argument("--device", choices=["auto", "cpu", "cuda", "mps"])
    ap.add_argument("--max-policy", choices=["per_channel", "global"])
    ap.add_argument("--rounding", choices=["half_up", "truncate"])
    args = ap.parse_args(argv)

    settings = EqualizationSettings.from_env(
        device=args.device,
        max_policy=args.max_policy,
        rounding=args.rounding,
    )
    image_service = ImageService()
    pipeline = EqualizationPipeline(settings, image_service=image_service)

    print(f"\nEqualizing images from {args.input} on {pipeline.device.name}...")
    gallery = image_service.stream_gallery(args.input, recursive=args.recursive)
    equalized = equalize_gallery(gallery,
                                 pipeline=pipeline,
                                 image_service=image_service,
                                 equalized_dir=args.output,
                                 ext=args.ext)

    print(f"\nEqualized {len(equalized)} images into {args.output}")
    return 0 if equalized else 1


if __name__ == "__main__":
    sys.exit(main())
