"""
Image processing utility functions.
"""
import math

import cv2
import numpy as np

from facefinder.core.exceptions import InvalidImageError


def bytes_to_numpy_array(image_bytes: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    """Convert image bytes to a numpy array.

    Args:
        image_bytes: Raw image bytes
        flags: OpenCV imread flags (default: COLOR)

    Returns:
        numpy.ndarray: Image as a numpy array

    Raises:
        InvalidImageError: If the image cannot be decoded
    """
    if not image_bytes:
        raise InvalidImageError("Empty image payload")

    np_array = np.frombuffer(image_bytes, np.uint8)
    img = cv2.imdecode(np_array, flags)

    if img is None:
        raise InvalidImageError("Failed to decode image bytes")

    return img


def downscale_to_max_pixels(img: np.ndarray, max_pixels: int) -> np.ndarray:
    """Shrink an image so that width * height does not exceed max_pixels."""
    height, width = img.shape[:2]
    pixels = width * height
    if pixels <= max_pixels:
        return img

    scale = math.sqrt(max_pixels / pixels)
    new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
    return cv2.resize(img, new_size, interpolation=cv2.INTER_AREA)
