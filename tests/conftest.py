import numpy as np
import pytest

from models.compute_device import ComputeDevice
from models.equalization_settings import EqualizationSettings
from models.image import Image
from pipeline.equalization_pipeline import EqualizationPipeline
from repositories.device_buffer_repository import DeviceBufferRepository


@pytest.fixture
def settings():
    return EqualizationSettings(device="cpu", profile_stages=True)


@pytest.fixture
def buffers():
    return DeviceBufferRepository(ComputeDevice("cpu"))


@pytest.fixture
def pipeline(settings):
    return EqualizationPipeline(settings)


@pytest.fixture
def two_by_two():
    """Single channel 2x2 image with two black and two white pixels."""
    return Image(np.array([[0, 0], [255, 255]], dtype=np.uint8))


@pytest.fixture
def rgb_image():
    rng = np.random.default_rng(7)
    return Image(rng.integers(20, 200, size=(32, 48, 3), dtype=np.uint8))


