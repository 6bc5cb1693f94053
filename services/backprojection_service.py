from __future__ import annotations

import torch

from models.equalization_settings import HISTOGRAM_BINS
from models.errors import DimensionMismatch


class BackProjectionService:
    """
    Replaces every sample with its channel's LUT entry in a single
    whole-image gather. Work items are independent pixel-channel pairs.
    """

    @staticmethod
    def project(samples: torch.Tensor, luts: torch.Tensor, mask: torch.Tensor | None = None) -> torch.Tensor:
        """
        Args:
            samples: (H, W, C) integer tensor.
            luts: (C, 256) integer tensor, one row per channel.
            mask: optional (H, W, C) boolean tensor; False samples are copied unchanged.

        Returns:
            (torch.Tensor): (H, W, C) uint8 tensor.
        """
        channels = samples.shape[-1]
        if luts.shape != (channels, HISTOGRAM_BINS):
            raise DimensionMismatch(
                f"Expected {channels} LUTs of {HISTOGRAM_BINS} entries, got shape {tuple(luts.shape)}")

        table = luts.reshape(-1).long()
        offsets = torch.arange(channels, device=samples.device) * HISTOGRAM_BINS
        projected = table[samples.long() + offsets]

        if mask is not None:
            projected = torch.where(mask, projected, samples.long())
        return projected.to(torch.uint8)
