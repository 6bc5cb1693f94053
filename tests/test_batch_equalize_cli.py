import numpy as np

from cli.batch_equalize import main
from models.image import Image
from services.image_service import ImageService


def test_main_equalizes_a_folder(tmp_path):
    source = tmp_path / "in"
    target = tmp_path / "out"
    service = ImageService()
    service.save(Image(np.array([[0, 0], [255, 255]], dtype=np.uint8), path=source / "tiny.png"))

    exit_code = main(["--input", str(source), "--output", str(target), "--ext", ".png",
                      "--device", "cpu", "--rounding", "truncate"])

    assert exit_code == 0
    written = service.load(target / "tiny_equalized.png")
    assert written.pixels.tolist() == [[127, 127], [255, 255]]


def test_main_reports_empty_folder(tmp_path):
    (tmp_path / "in").mkdir()
    exit_code = main(["--input", str(tmp_path / "in"), "--output", str(tmp_path / "out"), "--device", "cpu"])
    assert exit_code == 1
    assert (tmp_path / "out").is_dir()
