from pathlib import Path
from typing import Iterable, List, Union, Iterator
from io import BytesIO
import base64
import numpy as np
from PIL import Image as PILImage
from models.image import Image
from models.equalization_settings import HISTOGRAM_BINS
from models.errors import DimensionMismatch, InvalidPixelValue
from repositories.image_repository import ImageRepository


class ImageService:
    """I/O helpers.  No equalization logic, no torch imports."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None, mask: np.ndarray = None) -> Image:
        return self.image_repository.create_image(pixels, path, mask)

    def load(self, path: str | Path) -> Image:
        """Load a single image from disk into an Image object."""
        return self.image_repository.load(path)

    def decode(self, data: bytes, name: str = None) -> Image:
        return self.image_repository.decode(data, name)

    def stream_gallery(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield images lazily instead of returning a gigantic list.
        """
        return self.image_repository.iter_dir(folder,
                                              recursive=recursive,
                                              exts=exts)

    def save(self, image: Image) -> None:
        """
        Business-level method to save the image to its path.
        """
        self.image_repository.save(image)

    # save_gallery can accept *any* iterable
    def save_gallery(self, gallery: Iterable[Image]):
        for img in gallery:
            self.save(img)

    @staticmethod
    def validate(img: Image) -> None:
        """
        Check the shape, dtype and sample range of an Image before it reaches the device.
        Runs on the host, before anything is uploaded.
        """
        pixels = img.pixels
        if pixels.ndim not in (2, 3):
            raise DimensionMismatch(f"Image must be (H, W) or (H, W, C), got shape {pixels.shape}")
        if pixels.ndim == 3 and pixels.shape[2] == 0:
            raise DimensionMismatch("Image has no channels")
        if not np.issubdtype(pixels.dtype, np.integer):
            raise InvalidPixelValue(f"Samples must be integers, got dtype {pixels.dtype}")
        if pixels.size:
            low, high = int(pixels.min()), int(pixels.max())
            if low < 0 or high > HISTOGRAM_BINS - 1:
                bad = low if low < 0 else high
                raise InvalidPixelValue(f"Sample value {bad} outside [0, {HISTOGRAM_BINS - 1}]")
        if img.mask is not None:
            if img.mask.shape not in (pixels.shape[:2], as_channels_last(pixels).shape):
                raise DimensionMismatch(f"Mask of shape {img.mask.shape} does not fit image of shape {pixels.shape}")

    def equalized_path(self, img: Image) -> Path | None:
        return img.path.with_stem(img.path.stem + "_equalized") if img.path else None

    def encode_png_base64(self, img: Image) -> str:
        """Encode Image.pixels as a PNG data URL for JSON responses."""
        pixels = img.pixels
        if pixels.ndim == 3 and pixels.shape[2] == 1:
            pixels = pixels[:, :, 0]
        buffer = BytesIO()
        PILImage.fromarray(np.ascontiguousarray(pixels)).save(buffer, format='PNG')
        return f"data:image/png;base64,{base64.b64encode(buffer.getvalue()).decode('utf-8')}"


def as_channels_last(pixels: np.ndarray) -> np.ndarray:
    """View a 2-D single channel image as (H, W, 1)."""
    return pixels[:, :, np.newaxis] if pixels.ndim == 2 else pixels
