# models/compute_device.py
from __future__ import annotations
import logging
import torch

from models.errors import DeviceOperationFailure

logger = logging.getLogger(__name__)


class ComputeDevice:
    """
    The torch device every stage is dispatched to.
    • "auto" picks CUDA on NVIDIA, MPS on Apple Silicon, CPU otherwise.
    • Work issued to one device runs in program order on its default
      stream, which is the only ordering the pipeline relies on.
    """

    def __init__(self, name: str = "auto"):
        self.name = self._resolve(name)
        self.torch_device = torch.device(self.name)
        logger.debug(f"Compute device resolved to {self.name}")

    # ───────────────────────── selection
    @staticmethod
    def _resolve(name: str) -> str:
        if name == "auto":
            if torch.cuda.is_available():
                return "cuda"
            if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
                return "mps"
            return "cpu"
        if name == "cuda" and not torch.cuda.is_available():
            raise DeviceOperationFailure("CUDA device requested but not available")
        if name == "mps" and not (hasattr(torch.backends, 'mps') and torch.backends.mps.is_available()):
            raise DeviceOperationFailure("MPS device requested but not available")
        return name

    # ───────────────────────── public API
    def synchronize(self) -> None:
        """Block until every operation queued on the device has finished."""
        if self.name == "cuda":
            torch.cuda.synchronize(self.torch_device)
        elif self.name == "mps":
            torch.mps.synchronize()

    def __repr__(self) -> str:
        return f"ComputeDevice({self.name!r})"
