from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, List
import logging
import time

from models.compute_device import ComputeDevice
from models.equalization_result import StageTiming
from models.errors import DeviceOperationFailure, EqualizationError

logger = logging.getLogger(__name__)


class StageProfiler:
    """
    Wraps every pipeline stage the same way:
    *   tags any EqualizationError with the stage name,
    *   turns raw torch failures into DeviceOperationFailure,
    *   when enabled, waits for the device at the stage boundary and records
        how long the stage took.
    One profiler belongs to one run.
    """

    def __init__(self, device: ComputeDevice, enabled: bool = False):
        self.device = device
        self.enabled = enabled
        self.timings: List[StageTiming] = []

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
            if self.enabled:
                self.device.synchronize()
        except EqualizationError as err:
            if err.stage is None:
                err.stage = name
            raise
        except RuntimeError as err:
            raise DeviceOperationFailure(f"{name} stage failed on {self.device.name}: {err}", stage=name) from err

        if self.enabled:
            elapsed = time.perf_counter() - start
            self.timings.append(StageTiming(stage=name, seconds=elapsed))
            logger.debug(f"Stage {name} took {elapsed * 1000:.3f} ms")
