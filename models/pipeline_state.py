from __future__ import annotations
from enum import Enum

from models.errors import InvalidStageTransition


class PipelineState(Enum):
    LOADED = "loaded"
    HISTOGRAM_BUILT = "histogram_built"
    CUMULATIVE_BUILT = "cumulative_built"
    NORMALIZED = "normalized"
    BACK_PROJECTED = "back_projected"
    DONE = "done"
    FAILED = "failed"


# Each state may only be reached from the one listed here.
_PREDECESSOR = {
    PipelineState.HISTOGRAM_BUILT: PipelineState.LOADED,
    PipelineState.CUMULATIVE_BUILT: PipelineState.HISTOGRAM_BUILT,
    PipelineState.NORMALIZED: PipelineState.CUMULATIVE_BUILT,
    PipelineState.BACK_PROJECTED: PipelineState.NORMALIZED,
    PipelineState.DONE: PipelineState.BACK_PROJECTED,
}


def advance(current: PipelineState, target: PipelineState) -> PipelineState:
    """
    Return `target` if the state machine allows current → target.
    FAILED is reachable from any state except DONE.
    """
    if target is PipelineState.FAILED:
        if current in (PipelineState.DONE, PipelineState.FAILED):
            raise InvalidStageTransition(f"Cannot fail a run that is already {current.value}")
        return target
    if _PREDECESSOR.get(target) is not current:
        raise InvalidStageTransition(f"Cannot move from {current.value} to {target.value}")
    return target
