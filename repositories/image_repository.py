from pathlib import Path
from typing import Union, Iterable, List, Iterator
import logging
import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv
import os
import signal
from models.image import Image

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles file I/O for Image entities. Channel order is RGB(A) in memory.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.bmp,.tif,.tiff,.ppm,.pgm").split(",")
        }

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None, mask: np.ndarray = None) -> Image:
        if path is None:
            return Image(pixels, mask=mask)
        return Image(pixels=pixels, path=Path(path), mask=mask)

    @staticmethod
    def _to_rgb_order(arr: np.ndarray) -> np.ndarray:
        # OpenCV decodes colour images as BGR(A); grayscale is returned 2-D.
        if arr.ndim == 3 and arr.shape[2] == 3:
            return cv2.cvtColor(arr, cv2.COLOR_BGR2RGB)
        if arr.ndim == 3 and arr.shape[2] == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        return arr

    @staticmethod
    def load(path: Union[str, Path], timeout: int = 5) -> Image:
        path = Path(path)

        # ─── timeout wrapper (5 s default) ────────────────────────────────
        def _handler(signum, frame):
            raise TimeoutError(f"cv2.imread timed-out after {timeout}s: {path}")

        signal.signal(signal.SIGALRM, _handler)
        signal.alarm(timeout)
        try:
            arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        finally:
            signal.alarm(0)  # always disarm
        # ──────────────────────────────────────────────────────────────────

        if arr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")

        return Image(pixels=ImageRepository._to_rgb_order(arr), path=path)

    @staticmethod
    def decode(data: bytes, name: Union[str, Path] = None) -> Image:
        """Decode an encoded image held in memory (e.g. an HTTP upload)."""
        buffer = np.frombuffer(data, dtype=np.uint8)
        arr = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise ValueError(f"Could not decode image data: {name or '<bytes>'}")
        return Image(pixels=ImageRepository._to_rgb_order(arr), path=Path(name) if name else None)

    @staticmethod
    def save(image: Image) -> None:
        if image.path is None:
            raise ValueError("Cannot save an image without a path")
        pixels = image.pixels
        if pixels.ndim == 3 and pixels.shape[2] == 1:
            pixels = pixels[:, :, 0]
        Path(image.path).parent.mkdir(parents=True, exist_ok=True)
        PILImage.fromarray(np.ascontiguousarray(pixels)).save(image.path)

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield Image objects one at a time.  Nothing accumulates in memory.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if p.suffix.lower() not in allowed:
                logger.debug(f"Skipping due to extension: {p}")
                continue
            if not p.is_file():
                logger.debug(f"Skipping because not file: {p}")
                continue
            try:
                yield self.load(p)
            except (FileNotFoundError, TimeoutError) as err:
                logger.warning(f"Skipping {p.name}: {err}")

    def load_dir(
        self, folder: Union[str, Path], *, recursive=False, exts=None
    ) -> List[Image]:
        """
        Convenience helper that returns a list, but internally streams.
        """
        return list(self.iter_dir(folder, recursive=recursive, exts=exts))
