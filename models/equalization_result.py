from __future__ import annotations
from dataclasses import dataclass, field
from typing import List
import numpy as np

from models.image import Image
from models.pipeline_state import PipelineState


@dataclass
class StageTiming:
    stage: str
    seconds: float


@dataclass
class EqualizationResult:
    """
    Data object returned by one pipeline run.
    Snapshots are host copies taken after the run finished; they are None
    when snapshots are disabled.
    """
    image: Image                        # Equalized output, same shape as the input
    divisors: List[int]                 # Per-channel value each cumulative histogram was divided by
    state: PipelineState = PipelineState.DONE
    histograms: np.ndarray | None = None             # (C, 256)
    cumulative_histograms: np.ndarray | None = None  # (C, 256)
    luts: np.ndarray | None = None                   # (C, 256)
    timings: List[StageTiming] = field(default_factory=list)

    @property
    def total_seconds(self) -> float:
        return sum(t.seconds for t in self.timings)
