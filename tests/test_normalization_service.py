import numpy as np
import pytest
import torch

from models.equalization_settings import EqualizationSettings
from models.errors import DimensionMismatch, EmptyHistogram, InvalidDivisorOverride
from services.normalization_service import NormalizationService


def _service(buffers, **kwargs):
    return NormalizationService(buffers, EqualizationSettings(device="cpu", **kwargs))


def _two_by_two_cumulative():
    cumulative = torch.full((256,), 2, dtype=torch.int64)
    cumulative[255] = 4
    return cumulative


def test_half_up_rounding_is_pinned(buffers):
    lut = _service(buffers).normalize(_two_by_two_cumulative(), 4)
    assert int(lut[0]) == 128
    assert int(lut[254]) == 128
    assert int(lut[255]) == 255


def test_truncate_rounding(buffers):
    lut = _service(buffers, rounding="truncate").normalize(_two_by_two_cumulative(), 4)
    assert int(lut[0]) == 127
    assert int(lut[255]) == 255


def test_lut_is_monotonic_and_bounded(buffers):
    rng = np.random.default_rng(3)
    cumulative = torch.from_numpy(np.cumsum(rng.integers(0, 50, size=256)))
    lut = _service(buffers, target_max=200).normalize(cumulative, int(cumulative[-1]))
    values = lut.tolist()
    assert values == sorted(values)
    assert min(values) >= 0 and max(values) == 200


def test_smaller_divisor_is_clamped(buffers):
    lut = _service(buffers).normalize(torch.full((256,), 10, dtype=torch.int64), 5)
    assert lut.tolist() == [255] * 256


def test_zero_divisor_raises(buffers):
    with pytest.raises(EmptyHistogram):
        _service(buffers).normalize(torch.zeros(256, dtype=torch.int64), 0)


def test_wrong_size_raises(buffers):
    with pytest.raises(DimensionMismatch):
        _service(buffers).normalize(torch.zeros(128, dtype=torch.int64), 1)


def _buffer(*totals):
    return torch.cat([torch.full((256,), t, dtype=torch.int64) for t in totals])


def test_per_channel_divisors(buffers):
    assert _service(buffers).resolve_divisors(_buffer(4, 9, 6), 3) == [4, 9, 6]


def test_global_divisor(buffers):
    assert _service(buffers, max_policy="global").resolve_divisors(_buffer(4, 9, 6), 3) == [9, 9, 9]


def test_overrides(buffers):
    service = _service(buffers)
    assert service.resolve_divisors(_buffer(4, 9), 2, overrides=100) == [100, 100]
    assert service.resolve_divisors(_buffer(4, 9), 2, overrides=[1, 2]) == [1, 2]
    with pytest.raises(DimensionMismatch):
        service.resolve_divisors(_buffer(4, 9), 2, overrides=[1, 2, 3])
    with pytest.raises(InvalidDivisorOverride):
        service.resolve_divisors(_buffer(4, 9), 2, overrides=-1)


def test_buffer_size_must_match_channels(buffers):
    with pytest.raises(DimensionMismatch):
        _service(buffers).resolve_divisors(_buffer(4, 9), 3)
