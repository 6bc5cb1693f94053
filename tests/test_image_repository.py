import numpy as np
import pytest

from models.image import Image
from repositories.image_repository import ImageRepository
from services.image_service import ImageService


def test_color_image_round_trips_in_rgb_order(tmp_path):
    pixels = np.zeros((4, 5, 3), dtype=np.uint8)
    pixels[..., 0] = 200    # red
    path = tmp_path / "red.png"
    ImageRepository.save(Image(pixels, path=path))

    loaded = ImageRepository.load(path)
    assert loaded.pixels.shape == (4, 5, 3)
    assert loaded.pixels[0, 0].tolist() == [200, 0, 0]
    assert loaded.path == path


def test_grayscale_stays_single_channel(tmp_path):
    path = tmp_path / "gray.png"
    ImageRepository.save(Image(np.full((3, 3), 17, dtype=np.uint8), path=path))
    loaded = ImageService().load(path)
    assert loaded.pixels.shape == (3, 3)
    assert loaded.channels == 1


def test_decode_rejects_garbage():
    with pytest.raises(ValueError):
        ImageRepository.decode(b"not an image", "upload.png")


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        ImageRepository.load("does/not/exist.png")


def test_iter_dir_filters_extensions(tmp_path):
    ImageRepository.save(Image(np.zeros((2, 2), dtype=np.uint8), path=tmp_path / "a.png"))
    (tmp_path / "notes.txt").write_text("skip me")
    images = ImageRepository().load_dir(tmp_path)
    assert [img.path.name for img in images] == ["a.png"]
