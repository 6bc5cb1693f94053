from __future__ import annotations
import logging

import torch

from models.equalization_settings import HISTOGRAM_BINS, EqualizationSettings
from repositories.device_buffer_repository import DeviceBufferRepository

logger = logging.getLogger(__name__)


class HistogramService:
    """
    Builds the 256-bin intensity histogram of one channel on the device.

    *   "atomic": every sample is a work item adding 1 to its bin of a single
        shared buffer (scatter_add accumulates concurrent updates without loss).
    *   "partitioned": samples are split into work-groups, each group fills a
        private histogram, and the group histograms are summed.
    """

    def __init__(self, buffers: DeviceBufferRepository, settings: EqualizationSettings = None):
        settings = settings or EqualizationSettings.from_env()
        self.buffers = buffers
        self.strategy = settings.histogram_strategy
        self.workgroup_size = settings.workgroup_size

    # ─── Public API ────────────────────────────────────────────────
    def build(self, samples: torch.Tensor, mask: torch.Tensor | None = None) -> torch.Tensor:
        """
        Args:
            samples: integer tensor of any shape holding one channel, values in [0, 255].
            mask: optional boolean tensor of the same shape; only True samples are counted.

        Returns:
            (torch.Tensor): int64 tensor of 256 counts.
        """
        values = samples.reshape(-1).long()

        if mask is None:
            weights = torch.ones_like(values)
        else:
            weights = mask.reshape(-1).long()

        if self.strategy == "partitioned":
            return self._partitioned(values, weights)
        return self._atomic(values, weights)

    # ─── Internal helpers ──────────────────────────────────────────
    def _atomic(self, values: torch.Tensor, weights: torch.Tensor) -> torch.Tensor:
        hist = self.buffers.zeros(HISTOGRAM_BINS)
        hist.scatter_add_(0, values, weights)
        return hist

    def _partitioned(self, values: torch.Tensor, weights: torch.Tensor) -> torch.Tensor:
        groups = -(-values.numel() // self.workgroup_size)
        group_ids = torch.arange(values.numel(), device=values.device) // self.workgroup_size

        local = self.buffers.zeros(groups * HISTOGRAM_BINS)
        local.scatter_add_(0, group_ids * HISTOGRAM_BINS + values, weights)
        logger.debug(f"Reducing {groups} work-group histograms")
        return local.view(groups, HISTOGRAM_BINS).sum(dim=0)
