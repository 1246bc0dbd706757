"""Tests for image utilities."""
import numpy as np
import pytest

from facefinder.core.exceptions import InvalidImageError
from facefinder.core.utils.image import bytes_to_numpy_array, downscale_to_max_pixels


def test_decodes_png(image_bytes):
    img = bytes_to_numpy_array(image_bytes)
    assert img.shape == (64, 96, 3)


@pytest.mark.parametrize("payload", [b"", b"\x89PNG broken"])
def test_rejects_undecodable_bytes(payload):
    with pytest.raises(InvalidImageError):
        bytes_to_numpy_array(payload)


def test_downscale_keeps_small_images():
    img = np.zeros((10, 20, 3), dtype=np.uint8)
    assert downscale_to_max_pixels(img, 1000) is img


def test_downscale_large_images():
    img = np.zeros((100, 200, 3), dtype=np.uint8)
    resized = downscale_to_max_pixels(img, 5000)
    height, width = resized.shape[:2]
    assert width * height <= 5000
    assert width == pytest.approx(2 * height, rel=0.05)
