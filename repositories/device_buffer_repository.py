from typing import List
import numpy as np
import torch

from models.compute_device import ComputeDevice
from models.errors import DeviceOperationFailure


class DeviceBufferRepository:
    """
    Thin wrapper around host ↔ device transfers.
    Every torch failure comes out as DeviceOperationFailure with the original
    error chained.
    """

    def __init__(self, device: ComputeDevice):
        self.device = device

    def upload(self, host: np.ndarray) -> torch.Tensor:
        """Copy a host array into a fresh device buffer."""
        # torch has no unsigned dtypes wider than 8 bits on every backend
        if host.dtype != np.uint8 and host.dtype != np.bool_:
            host = host.astype(np.int64)
        try:
            return torch.tensor(np.ascontiguousarray(host), device=self.device.torch_device)
        except RuntimeError as err:
            raise DeviceOperationFailure(f"Upload of {host.shape} buffer to {self.device.name} failed: {err}") from err

    def readback(self, buffer: torch.Tensor) -> np.ndarray:
        """Blocking copy of a device buffer to host memory."""
        try:
            return buffer.detach().cpu().numpy()
        except RuntimeError as err:
            raise DeviceOperationFailure(f"Readback of {tuple(buffer.shape)} buffer failed: {err}") from err

    def readback_ints(self, buffer: torch.Tensor) -> List[int]:
        return [int(v) for v in self.readback(buffer).reshape(-1)]

    def zeros(self, length: int) -> torch.Tensor:
        try:
            return torch.zeros(length, dtype=torch.int64, device=self.device.torch_device)
        except RuntimeError as err:
            raise DeviceOperationFailure(f"Allocation of {length} counters failed: {err}") from err
