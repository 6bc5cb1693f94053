from __future__ import annotations
from typing import List, Sequence, Union
import numbers
import logging

import torch

from models.equalization_settings import HISTOGRAM_BINS, EqualizationSettings
from models.errors import DimensionMismatch, EmptyHistogram, InvalidDivisorOverride
from repositories.device_buffer_repository import DeviceBufferRepository

logger = logging.getLogger(__name__)


class NormalizationService:
    """
    Turns cumulative histograms into lookup tables.
    *   Divisors are resolved on the host: this is the one place the run
        waits for device results before the last stage.
    *   LUT values use exact integer arithmetic, never floating point.
    """

    def __init__(self, buffers: DeviceBufferRepository, settings: EqualizationSettings = None):
        settings = settings or EqualizationSettings.from_env()
        self.buffers = buffers
        self.target_max = settings.target_max
        self.max_policy = settings.max_policy
        self.rounding = settings.rounding

    def resolve_divisors(
        self,
        cumulative_buffer: torch.Tensor,
        channels: int,
        overrides: Union[int, Sequence[int], None] = None,
    ) -> List[int]:
        """
        Args:
            cumulative_buffer: flat (channels * 256) buffer of cumulative histograms.
            channels: number of channels held by the buffer.
            overrides: a single divisor for every channel, or one per channel.

        Returns:
            (List[int]): the divisor of each channel.
        """
        if cumulative_buffer.numel() != channels * HISTOGRAM_BINS:
            raise DimensionMismatch(
                f"Cumulative buffer holds {cumulative_buffer.numel()} entries, "
                f"expected {channels} x {HISTOGRAM_BINS}")

        if overrides is not None:
            divisors = [int(overrides)] * channels if isinstance(overrides, numbers.Integral) else [int(v) for v in overrides]
            if len(divisors) != channels:
                raise DimensionMismatch(f"Got {len(divisors)} divisor overrides for {channels} channels")
            if any(v < 0 for v in divisors):
                raise InvalidDivisorOverride(f"Divisor overrides must not be negative: {divisors}")
            return divisors

        totals = self.buffers.readback_ints(cumulative_buffer.view(channels, HISTOGRAM_BINS)[:, -1])
        logger.debug(f"Channel totals {totals}, policy {self.max_policy}")
        if self.max_policy == "global":
            return [max(totals)] * channels
        return totals

    def normalize(self, cumulative: torch.Tensor, divisor: int) -> torch.Tensor:
        """
        lut[i] = cumulative[i] * target_max / divisor, rounded per the configured mode
        and clamped to [0, target_max].
        """
        if cumulative.numel() != HISTOGRAM_BINS:
            raise DimensionMismatch(f"Cumulative histogram has {cumulative.numel()} bins, expected {HISTOGRAM_BINS}")
        if divisor == 0:
            raise EmptyHistogram("Cannot normalize a cumulative histogram by zero")

        scaled = cumulative.long() * self.target_max
        if self.rounding == "truncate":
            lut = torch.div(scaled, divisor, rounding_mode="floor")
        else:
            lut = torch.div(scaled * 2 + divisor, 2 * divisor, rounding_mode="floor")
        return lut.clamp(0, self.target_max)

    def identity(self, device: torch.device) -> torch.Tensor:
        return torch.arange(HISTOGRAM_BINS, dtype=torch.int64, device=device)
