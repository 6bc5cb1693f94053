from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


@dataclass
class Image:
    """
    Simple data object: integer pixels (+ optional source path for bookkeeping).
    No OpenCV logic outside the repository.
    """
    pixels: np.ndarray # Shape (H, W) or (H, W, C), samples in [0, 255].
    path: Path | None = None # Source of the image.
    mask: np.ndarray | None = None # Boolean (H, W) or (H, W, C); samples taking part in the histogram.

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else self.pixels.shape[2]

    @property
    def pixel_count(self) -> int:
        return int(self.pixels.shape[0] * self.pixels.shape[1])
