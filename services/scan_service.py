from __future__ import annotations
import logging

import torch

from models.equalization_settings import HISTOGRAM_BINS, EqualizationSettings
from models.errors import DimensionMismatch

logger = logging.getLogger(__name__)


class ScanService:
    """
    Inclusive prefix sum using the Hillis–Steele scan.

    Within a block of width B the scan runs ceil(log2(B)) rounds; in round r
    every position i adds the previous round's value at i - 2**r, or 0 when
    that index is negative. Each round writes a new buffer and reads only
    the previous one, like the double-buffered local memory of a GPU kernel.

    Inputs longer than one block are scanned block-by-block in parallel; the
    block totals are then scanned themselves and added back as carries.
    """

    def __init__(self, settings: EqualizationSettings = None):
        settings = settings or EqualizationSettings.from_env()
        self.block_size = settings.scan_block_size

    @property
    def rounds(self) -> int:
        return (self.block_size - 1).bit_length()

    # ─── Public API ────────────────────────────────────────────────
    def scan_channel(self, histogram_buffer: torch.Tensor, channel_index: int) -> torch.Tensor:
        """
        Scan the 256-bin window of `channel_index` inside a flat buffer holding
        every channel's histogram back to back.

        Returns:
            (torch.Tensor): a new 256-entry inclusive cumulative histogram.
        """
        if histogram_buffer.dim() != 1 or histogram_buffer.numel() % HISTOGRAM_BINS:
            raise DimensionMismatch(
                f"Histogram buffer of shape {tuple(histogram_buffer.shape)} "
                f"is not a whole number of {HISTOGRAM_BINS}-bin histograms")
        channels = histogram_buffer.numel() // HISTOGRAM_BINS
        if not 0 <= channel_index < channels:
            raise DimensionMismatch(f"Channel {channel_index} not in a buffer of {channels} channels")

        offset = channel_index * HISTOGRAM_BINS
        return self.inclusive_scan(histogram_buffer[offset:offset + HISTOGRAM_BINS])

    def inclusive_scan(self, values: torch.Tensor) -> torch.Tensor:
        """Inclusive prefix sum of a 1-D tensor of any length."""
        n = values.numel()
        if n == 0:
            return values.clone()

        blocks = -(-n // self.block_size)
        padded = torch.zeros(blocks * self.block_size, dtype=values.dtype, device=values.device)
        padded[:n] = values
        tiles = self._scan_blocks(padded.view(blocks, self.block_size))

        if blocks > 1:
            totals = tiles[:, -1]
            carries = self.inclusive_scan(totals) - totals  # exclusive scan of the block totals
            tiles = tiles + carries.unsqueeze(1)
            logger.debug(f"Propagated carries across {blocks} scan blocks")

        return tiles.reshape(-1)[:n]

    # ─── Internal helpers ──────────────────────────────────────────
    def _scan_blocks(self, tiles: torch.Tensor) -> torch.Tensor:
        current = tiles
        for r in range(self.rounds):
            stride = 1 << r
            following = current.clone()
            following[:, stride:] += current[:, :-stride]
            current = following
        return current
