from __future__ import annotations


class EqualizationError(Exception):
    """
    Base class for every failure of an equalization run.
    The orchestrator fills in `stage` with the name of the stage that raised.
    """

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidPixelValue(EqualizationError):
    """A sample is outside [0, 255] or is not an integer."""


class EmptyHistogram(EqualizationError):
    """A channel has no counted samples, so its LUT cannot be normalized."""


class DimensionMismatch(EqualizationError):
    """A buffer, LUT or image does not have the shape its channel count implies."""


class DeviceOperationFailure(EqualizationError):
    """A dispatch or memory transfer on the compute device failed."""


class InvalidStageTransition(EqualizationError):
    """The pipeline was asked to move to a state its current state cannot reach."""


class InvalidDivisorOverride(EqualizationError):
    """A caller-supplied divisor override is negative."""
