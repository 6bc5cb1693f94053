"""
Equalization Pipeline
Runs the four device stages of histogram equalization on one image:
histogram → cumulative histogram → lookup table → back-projection.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Union

import numpy as np
import torch

from models.compute_device import ComputeDevice
from models.equalization_result import EqualizationResult
from models.equalization_settings import HISTOGRAM_BINS, EqualizationSettings
from models.errors import EmptyHistogram, EqualizationError
from models.image import Image
from models.pipeline_state import PipelineState, advance
from repositories.device_buffer_repository import DeviceBufferRepository
from services.backprojection_service import BackProjectionService
from services.histogram_service import HistogramService
from services.image_service import ImageService, as_channels_last
from services.normalization_service import NormalizationService
from services.scan_service import ScanService
from services.stage_profiler import StageProfiler

logger = logging.getLogger(__name__)

DivisorOverrides = Union[int, Sequence[int], None]


class _Run:
    """State of one invocation. Never shared between images."""

    def __init__(self, profiler: StageProfiler):
        self.state = PipelineState.LOADED
        self.profiler = profiler

    def advance(self, target: PipelineState) -> None:
        self.state = advance(self.state, target)


class EqualizationPipeline:
    """
    Orchestrates one equalization run per call to `run`.

    Each stage consumes the previous stage's buffer and produces a new one:
    the histogram, cumulative and LUT buffers are never written after the
    stage that created them. Channel-scoped stages loop over channels;
    back-projection handles the whole image at once.
    """

    def __init__(
        self,
        settings: EqualizationSettings = None,
        *,
        image_service: ImageService = None,
    ):
        self.settings = settings or EqualizationSettings.from_env()
        self.device = ComputeDevice(self.settings.device)
        self.buffers = DeviceBufferRepository(self.device)
        self.image_service = image_service or ImageService()
        self.histogram_service = HistogramService(self.buffers, self.settings)
        self.scan_service = ScanService(self.settings)
        self.normalization_service = NormalizationService(self.buffers, self.settings)
        self.backprojection_service = BackProjectionService()

        logger.info(f"EqualizationPipeline initialized on {self.device.name} "
                    f"(policy={self.settings.max_policy}, rounding={self.settings.rounding}, "
                    f"histogram={self.settings.histogram_strategy})")

    # ─── Public API ────────────────────────────────────────────────
    def run(self, img: Image, max_overrides: DivisorOverrides = None) -> EqualizationResult:
        """
        Equalize `img` and return the output image with its diagnostics.

        Args:
            img: input image, left untouched.
            max_overrides: divisor for every channel, or one per channel,
                replacing the configured max policy.

        Raises:
            EqualizationError: any stage failure; `stage` names the stage.
        """
        run = _Run(StageProfiler(self.device, self.settings.profile_stages))

        try:
            with run.profiler.stage("validate"):
                self.image_service.validate(img)

            with run.profiler.stage("upload"):
                samples = self.buffers.upload(as_channels_last(img.pixels))
                mask = self._upload_mask(img, samples.shape)
            channels = samples.shape[-1]

            with run.profiler.stage("histogram"):
                histograms = torch.cat([
                    self.histogram_service.build(samples[..., c], None if mask is None else mask[..., c])
                    for c in range(channels)
                ])
                run.advance(PipelineState.HISTOGRAM_BUILT)

            with run.profiler.stage("scan"):
                cumulative = torch.cat([
                    self.scan_service.scan_channel(histograms, c) for c in range(channels)
                ])
                run.advance(PipelineState.CUMULATIVE_BUILT)

            with run.profiler.stage("normalize"):
                divisors = self.normalization_service.resolve_divisors(cumulative, channels, max_overrides)
                luts = torch.stack([
                    self._normalize_channel(cumulative, c, divisors[c]) for c in range(channels)
                ])
                run.advance(PipelineState.NORMALIZED)

            with run.profiler.stage("backproject"):
                projected = self.backprojection_service.project(samples, luts, mask)
                run.advance(PipelineState.BACK_PROJECTED)

            with run.profiler.stage("readback"):
                pixels = self.buffers.readback(projected).reshape(img.pixels.shape)
                snapshots = self._snapshots(histograms, cumulative, luts, channels)
                run.advance(PipelineState.DONE)

        except EqualizationError as err:
            run.state = advance(run.state, PipelineState.FAILED)
            logger.error(f"Equalization aborted at stage {err.stage}: {err.kind}: {err}")
            raise

        output = self.image_service.create_image(pixels, self.image_service.equalized_path(img),
                                                 None if img.mask is None else img.mask.copy())
        logger.info(f"Equalized {img.pixel_count} pixels x {channels} channels, divisors {divisors}")
        return EqualizationResult(
            image=output,
            divisors=divisors,
            state=run.state,
            timings=run.profiler.timings,
            **snapshots,
        )

    # ─── Internal helpers ──────────────────────────────────────────
    def _upload_mask(self, img: Image, shape: torch.Size) -> torch.Tensor | None:
        if img.mask is None:
            return None
        host = img.mask.astype(bool)
        if host.ndim == 2:
            host = np.repeat(host[:, :, np.newaxis], shape[-1], axis=2)
        return self.buffers.upload(host)

    def _normalize_channel(self, cumulative: torch.Tensor, channel: int, divisor: int) -> torch.Tensor:
        window = cumulative[channel * HISTOGRAM_BINS:(channel + 1) * HISTOGRAM_BINS]
        try:
            return self.normalization_service.normalize(window, divisor)
        except EmptyHistogram:
            if self.settings.empty_channel == "raise":
                raise
            logger.warning(f"Channel {channel} has nothing to normalize by; using the identity LUT")
            return self.normalization_service.identity(cumulative.device)

    def _snapshots(self, histograms, cumulative, luts, channels: int) -> dict:
        if not self.settings.keep_snapshots:
            return {}
        return {
            "histograms": self.buffers.readback(histograms).reshape(channels, HISTOGRAM_BINS),
            "cumulative_histograms": self.buffers.readback(cumulative).reshape(channels, HISTOGRAM_BINS),
            "luts": self.buffers.readback(luts),
        }


def equalize(
    img: Image,
    *,
    pipeline: EqualizationPipeline = None,
    max_overrides: DivisorOverrides = None,
) -> Image:
    """Equalize one image and return only the output image."""
    pipeline = pipeline or EqualizationPipeline()
    return pipeline.run(img, max_overrides=max_overrides).image


def log_equalization_report(result: EqualizationResult) -> None:
    """
    Print a summary of one run: divisors, LUT ranges and stage timings.
    """
    path = result.image.path
    print(f"{'='*60}")
    print(f"EQUALIZATION {result.state.value.upper()}: {path.name if path else '<in-memory>'}")
    print(f"{'='*60}")

    for c, divisor in enumerate(result.divisors):
        line = f"   channel {c}: divisor={divisor}"
        if result.luts is not None:
            lut = result.luts[c]
            line += f" | lut[0]={int(lut[0])} lut[255]={int(lut[-1])}"
        print(line)

    for timing in result.timings:
        print(f"   {timing.stage:<12} {timing.seconds * 1000:9.3f} ms")
    if result.timings:
        print(f"   {'total':<12} {result.total_seconds * 1000:9.3f} ms")
    print(f"{'='*60}")
