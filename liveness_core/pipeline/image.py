"""Image handles: decoding, conversion and the validation gate.

The pipeline works on `PIL.Image.Image` handles. Raw bytes, paths and
`uint8` numpy arrays are converted here so every later stage sees RGB pixels.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import ErrorKind, LivenessError

logger = logging.getLogger(__name__)

MIN_IMAGE_SIZE = 64
MAX_IMAGE_SIZE = 4096

ImageSource = Union[bytes, str, Path, BinaryIO]
ImageLike = Union[Image.Image, np.ndarray]


def load_image(source: ImageSource) -> Image.Image:
    """Decode bytes, a path or a file object into an RGB image.

    EXIF orientation is applied and any alpha channel is composited over black.

    Raises:
        LivenessError(INVALID_IMAGE): if the data cannot be decoded.
    """
    try:
        if isinstance(source, (bytes, bytearray)):
            img = Image.open(io.BytesIO(source))
        else:
            img = Image.open(source)
        img.load()
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise LivenessError(ErrorKind.INVALID_IMAGE, f"Corrupt/invalid image: {e}", e) from e

    img = ImageOps.exif_transpose(img)
    return to_rgb(img)


def to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        img = img.convert("RGBA")
        background = Image.new("RGBA", img.size, (0, 0, 0, 255))
        return Image.alpha_composite(background, img).convert("RGB")
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def as_pil_image(image: Optional[ImageLike]) -> Optional[Image.Image]:
    """Accept a PIL image or an (H, W, 3|4) uint8 array; anything else is None."""
    if image is None:
        return None
    if isinstance(image, Image.Image):
        return image
    if isinstance(image, np.ndarray):
        if image.dtype != np.uint8 or image.ndim != 3 or image.shape[2] not in (3, 4):
            return None
        # uint8 (H, W, 3) -> RGB, (H, W, 4) -> RGBA
        return Image.fromarray(np.ascontiguousarray(image))
    return None


def validate_image(image: Optional[ImageLike]) -> bool:
    """Fail-closed size and integrity check. Never raises."""
    img = as_pil_image(image)
    if img is None:
        logger.error("Input image is missing or not an image")
        return False

    width, height = img.size
    if width <= MIN_IMAGE_SIZE or height <= MIN_IMAGE_SIZE:
        logger.error("Image too small: %dx%d", width, height)
        return False
    if width >= MAX_IMAGE_SIZE or height >= MAX_IMAGE_SIZE:
        logger.error("Image too large: %dx%d", width, height)
        return False

    try:
        img.load()
    except (OSError, ValueError) as e:
        logger.error("Image has no pixel data: %s", e)
        return False
    return True


def rgb_array(image: ImageLike) -> np.ndarray:
    """Return pixels as an (H, W, 3) uint8 array in RGB order."""
    img = as_pil_image(image)
    if img is None:
        raise LivenessError(ErrorKind.INVALID_IMAGE, "Unsupported image type")
    return np.asarray(to_rgb(img), dtype=np.uint8)
