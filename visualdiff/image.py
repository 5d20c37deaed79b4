"""Image loading and encoding module.

This module decodes raster images into RGBA pixel buffers for the differs
and writes difference artifacts back to disk as PNG.

Every image is normalized to 8-bit RGBA on load so that differs can compare
pixels without caring about the source mode (palette, grayscale, RGB, ...).
"""

from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError


class ImageLoadError(OSError):
    """Raised when an image file is missing or cannot be decoded."""


def load_image(image_path: str | Path) -> np.ndarray:
    """Decode an image file into an RGBA pixel buffer.

    Args:
        image_path: Path to the image (any format Pillow can read)

    Returns:
        Array of shape ``(height, width, 4)`` with dtype ``uint8``

    Raises:
        ImageLoadError: If the file does not exist or cannot be decoded
    """
    path = Path(image_path)
    if not path.is_file():
        msg = f"Image not found: {path}"
        raise ImageLoadError(msg)

    try:
        with Image.open(path) as img:
            # Convert to RGBA if necessary (palette, L, RGB, CMYK, ...)
            rgba = img if img.mode == "RGBA" else img.convert("RGBA")
            return np.asarray(rgba, dtype=np.uint8).copy()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        msg = f"Failed to decode {path}: {e}"
        raise ImageLoadError(msg) from e


def save_png(image: Image.Image | np.ndarray, output_path: Path) -> Path:
    """Write a pixel buffer to disk as a 32-bit RGBA PNG.

    The format is always PNG, independent of the file extension, because
    difference artifacts are named after the compared pair rather than
    after the format.

    Args:
        image: Pillow image or array of shape ``(H, W)``, ``(H, W, 3)`` or
            ``(H, W, 4)``
        output_path: Path where the PNG will be written

    Returns:
        The path that was written
    """
    if isinstance(image, np.ndarray):
        image = Image.fromarray(image)

    converted_img = image if image.mode == "RGBA" else image.convert("RGBA")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    converted_img.save(output_path, format="PNG")
    return output_path
