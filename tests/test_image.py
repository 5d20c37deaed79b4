"""Tests for image loading and PNG encoding."""

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from conftest import create_test_image
from visualdiff.image import ImageLoadError, load_image, save_png


class TestLoadImage:
    """Tests for load_image."""

    def test_rgb_converted_to_rgba(self, tmp_path: Path) -> None:
        src = create_test_image(tmp_path / "rgb.png", size=(5, 3), color=(1, 2, 3))

        arr = load_image(src)

        assert arr.shape == (3, 5, 4)
        assert arr.dtype == np.uint8
        assert tuple(arr[0, 0]) == (1, 2, 3, 255)

    def test_grayscale_converted_to_rgba(self, tmp_path: Path) -> None:
        src = tmp_path / "gray.png"
        Image.new("L", (4, 4), 77).save(src)
        arr = load_image(src)
        assert tuple(arr[0, 0]) == (77, 77, 77, 255)

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        src = create_test_image(tmp_path / "img.png")
        assert load_image(str(src)).shape[-1] == 4

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ImageLoadError, match="not found"):
            load_image(tmp_path / "missing.png")

    def test_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ImageLoadError):
            load_image(tmp_path)

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        corrupt = tmp_path / "corrupt.png"
        corrupt.write_bytes(b"definitely not an image")
        with pytest.raises(ImageLoadError, match="Failed to decode"):
            load_image(corrupt)

    def test_load_error_is_oserror(self) -> None:
        assert issubclass(ImageLoadError, OSError)


class TestSavePng:
    """Tests for save_png."""

    def test_converts_to_rgba(self, tmp_path: Path) -> None:
        mask = Image.new("LA", (4, 2), (0, 255))
        out = save_png(mask, tmp_path / "mask.png")

        with Image.open(out) as img:
            assert img.format == "PNG"
            assert img.mode == "RGBA"
            assert img.size == (4, 2)

    def test_png_without_extension(self, tmp_path: Path) -> None:
        """Artifacts named after a common prefix may have no extension."""
        out = save_png(Image.new("RGB", (2, 2)), tmp_path / "image_v")
        with Image.open(out) as img:
            assert img.format == "PNG"

    def test_from_array_and_creates_parent(self, tmp_path: Path) -> None:
        arr = np.zeros((3, 2, 4), dtype=np.uint8)
        out = save_png(arr, tmp_path / "nested" / "dir" / "arr.png")
        assert out.exists()
        with Image.open(out) as img:
            assert img.size == (2, 3)
