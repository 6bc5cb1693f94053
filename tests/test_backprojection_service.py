import pytest
import torch

from models.errors import DimensionMismatch
from services.backprojection_service import BackProjectionService


def test_each_channel_uses_its_own_lut():
    samples = torch.tensor([[[0, 0], [1, 255]]])             # (1, 2, 2)
    luts = torch.stack([torch.arange(256) // 2, 255 - torch.arange(256)])
    out = BackProjectionService.project(samples, luts)
    assert out.dtype == torch.uint8
    assert out.tolist() == [[[0, 255], [0, 0]]]


def test_masked_out_samples_are_copied():
    samples = torch.tensor([[[10], [20]]])
    luts = torch.full((1, 256), 99)
    mask = torch.tensor([[[True], [False]]])
    out = BackProjectionService.project(samples, luts, mask)
    assert out.tolist() == [[[99], [20]]]


def test_lut_count_must_match_channels():
    samples = torch.zeros((2, 2, 3), dtype=torch.int64)
    with pytest.raises(DimensionMismatch):
        BackProjectionService.project(samples, torch.zeros((2, 256), dtype=torch.int64))


def test_projection_twice_is_not_identity():
    samples = torch.tensor([[[0], [128]]])
    luts = torch.clamp(torch.arange(256) + 10, max=255).unsqueeze(0)
    once = BackProjectionService.project(samples, luts)
    twice = BackProjectionService.project(once, luts)
    assert not torch.equal(once, twice)
