import numpy as np
import pytest
import torch

from models.equalization_settings import EqualizationSettings
from services.histogram_service import HistogramService


def _service(buffers, strategy="atomic", workgroup_size=256):
    return HistogramService(buffers, EqualizationSettings(device="cpu",
                                                          histogram_strategy=strategy,
                                                          workgroup_size=workgroup_size))


@pytest.mark.parametrize("strategy", ["atomic", "partitioned"])
def test_counts_sum_to_pixel_count(buffers, strategy):
    rng = np.random.default_rng(0)
    channel = torch.from_numpy(rng.integers(0, 256, size=(37, 53)).astype(np.int64))

    hist = _service(buffers, strategy).build(channel)

    assert hist.shape == (256,)
    assert int(hist.sum()) == 37 * 53
    expected = np.bincount(channel.numpy().ravel(), minlength=256)
    assert hist.tolist() == expected.tolist()


def test_partitioned_matches_atomic_with_ragged_last_group(buffers):
    channel = torch.arange(1000) % 256
    atomic = _service(buffers, "atomic").build(channel)
    partitioned = _service(buffers, "partitioned", workgroup_size=64).build(channel)
    assert torch.equal(atomic, partitioned)


@pytest.mark.parametrize("strategy", ["atomic", "partitioned"])
def test_empty_channel_gives_zero_histogram(buffers, strategy):
    hist = _service(buffers, strategy).build(torch.zeros((0, 0), dtype=torch.uint8))
    assert hist.tolist() == [0] * 256


def test_mask_excludes_samples(buffers):
    channel = torch.tensor([0, 0, 10, 10, 10])
    mask = torch.tensor([True, False, True, True, False])
    hist = _service(buffers).build(channel, mask)
    assert int(hist[0]) == 1
    assert int(hist[10]) == 2
    assert int(hist.sum()) == 3

