from __future__ import annotations
from dataclasses import dataclass
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

HISTOGRAM_BINS = 256

MAX_POLICIES = ("per_channel", "global")
ROUNDING_MODES = ("half_up", "truncate")
HISTOGRAM_STRATEGIES = ("atomic", "partitioned")
EMPTY_CHANNEL_POLICIES = ("identity", "raise")
DEVICES = ("auto", "cpu", "cuda", "mps")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EqualizationSettings:
    """
    Value-object holding every knob of an equalization run.

    max_policy:   "per_channel" divides each channel by its own total,
                  "global" divides every channel by the largest total.
    rounding:     "half_up" rounds cum * target_max / divisor to nearest with
                  ties going up, "truncate" floors it.
    empty_channel: what to do when a channel has nothing to normalize by:
                  "identity" keeps its values, "raise" aborts the run.
    """
    device: str = "auto"
    target_max: int = 255
    max_policy: str = "per_channel"
    rounding: str = "half_up"
    histogram_strategy: str = "atomic"
    workgroup_size: int = 256
    scan_block_size: int = 256
    empty_channel: str = "identity"
    profile_stages: bool = False
    keep_snapshots: bool = True

    def __post_init__(self):
        if self.device not in DEVICES:
            raise ValueError(f"Unknown device '{self.device}', expected one of {DEVICES}")
        if not 1 <= self.target_max <= HISTOGRAM_BINS - 1:
            raise ValueError(f"target_max must be within [1, {HISTOGRAM_BINS - 1}], got {self.target_max}")
        if self.max_policy not in MAX_POLICIES:
            raise ValueError(f"Unknown max policy '{self.max_policy}', expected one of {MAX_POLICIES}")
        if self.rounding not in ROUNDING_MODES:
            raise ValueError(f"Unknown rounding mode '{self.rounding}', expected one of {ROUNDING_MODES}")
        if self.histogram_strategy not in HISTOGRAM_STRATEGIES:
            raise ValueError(f"Unknown histogram strategy '{self.histogram_strategy}', "
                             f"expected one of {HISTOGRAM_STRATEGIES}")
        if self.workgroup_size < 1:
            raise ValueError(f"workgroup_size must be positive, got {self.workgroup_size}")
        if self.scan_block_size < 2:
            raise ValueError(f"scan_block_size must be at least 2, got {self.scan_block_size}")
        if self.empty_channel not in EMPTY_CHANNEL_POLICIES:
            raise ValueError(f"Unknown empty channel policy '{self.empty_channel}', "
                             f"expected one of {EMPTY_CHANNEL_POLICIES}")

    @classmethod
    def from_env(cls, **overrides) -> EqualizationSettings:
        """Build settings from EQUALIZER_* environment variables; keyword arguments win."""
        values = dict(
            device=os.getenv("EQUALIZER_DEVICE", "auto").strip().lower(),
            target_max=int(os.getenv("EQUALIZER_TARGET_MAX", "255")),
            max_policy=os.getenv("EQUALIZER_MAX_POLICY", "per_channel").strip().lower(),
            rounding=os.getenv("EQUALIZER_ROUNDING", "half_up").strip().lower(),
            histogram_strategy=os.getenv("EQUALIZER_HISTOGRAM_STRATEGY", "atomic").strip().lower(),
            workgroup_size=int(os.getenv("EQUALIZER_WORKGROUP_SIZE", "256")),
            scan_block_size=int(os.getenv("EQUALIZER_SCAN_BLOCK_SIZE", "256")),
            empty_channel=os.getenv("EQUALIZER_EMPTY_CHANNEL", "identity").strip().lower(),
            profile_stages=_env_flag("EQUALIZER_PROFILE_STAGES", "false"),
            keep_snapshots=_env_flag("EQUALIZER_KEEP_SNAPSHOTS", "true"),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
