"""
Batch Equalizer Pipeline
Equalizes every image of a gallery and writes the results to one directory.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List
from dotenv import load_dotenv
from tqdm import tqdm

from models.errors import EqualizationError
from models.image import Image
from pipeline.equalization_pipeline import EqualizationPipeline
from services.image_service import ImageService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Equalized images output directory
EQUALIZED_DIR = os.getenv("EQUALIZED_DIR_PATH", "data/equalized")
OUTPUT_EXT = os.getenv("OUTPUT_IMG_EXT", ".png")


def equalize_gallery(
    gallery: Iterable[Image],
    *,
    pipeline: EqualizationPipeline = None,
    image_service: ImageService = None,
    equalized_dir: str | Path = EQUALIZED_DIR,
    ext: str = OUTPUT_EXT,
    save: bool = True,
) -> List[Image]:
    """
    Equalize a stream of images.

    Each image is its own run: a failing image is logged and skipped,
    the others are still processed.

    Args:
        gallery: Images to equalize (any iterable, consumed lazily)
        pipeline: Orchestrator to run every image through
        image_service: Service for image I/O
        equalized_dir: Directory to save equalized images
        ext: File extension for equalized images
        save: Write each result to disk as soon as it is produced

    Returns:
        List[Image]: Equalized images with their output paths set
    """
    pipeline = pipeline or EqualizationPipeline()
    image_service = image_service or ImageService()
    equalized_dir = Path(equalized_dir)
    equalized_dir.mkdir(parents=True, exist_ok=True)

    equalized = []
    for i, img in enumerate(tqdm(gallery, desc="equalize", ncols=70), 1):
        try:
            result = pipeline.run(img)
        except EqualizationError as err:
            name = img.path.name if img.path else f"image {i}"
            logger.error(f"Skipping {name}: {err.kind} at stage {err.stage}: {err}")
            continue

        stem = img.path.stem if img.path else f"image_{i:04d}"
        result.image.path = equalized_dir / f"{stem}_equalized{ext}"
        if save:
            image_service.save(result.image)
        equalized.append(result.image)

    logger.info(f"Equalized {len(equalized)} images into {equalized_dir}")
    return equalized
