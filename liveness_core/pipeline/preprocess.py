"""Deterministic resize + normalize into a model-ready tensor.

Tensor contract: float32, shape (1, 3, N, N), planar channel-major with
planes in R, G, B order, each plane row-major. Plane c holds
(pixel_c / 255 - mean[c]) / std[c].
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
from PIL import Image

from ..config import IMAGENET_MEAN, IMAGENET_STD, ModelSpec
from .image import ImageLike, as_pil_image, to_rgb

logger = logging.getLogger(__name__)

DEFAULT_INPUT_SIZE = 224
RGB_CHANNELS = (0, 1, 2)


def resize_image(image: Image.Image, width: int, height: int) -> Image.Image:
    """Stretch to exactly width x height; aspect ratio is not preserved."""
    return image.resize((width, height), resample=Image.BILINEAR)


def rasterize_rgba(image: Image.Image) -> np.ndarray:
    """Draw into an (H, W, 4) uint8 RGBA buffer, alpha composited over black."""
    return np.asarray(to_rgb(image).convert("RGBA"), dtype=np.uint8)


def normalize_image(
    image: ImageLike,
    size: int = DEFAULT_INPUT_SIZE,
    mean: Sequence[float] = IMAGENET_MEAN,
    std: Sequence[float] = IMAGENET_STD,
) -> Optional[np.ndarray]:
    """Resize + normalize. Returns None when the raster cannot be produced."""
    img = as_pil_image(image)
    if img is None:
        logger.error("Cannot normalize: unsupported image")
        return None

    try:
        resized = resize_image(img, size, size)
        rgba = rasterize_rgba(resized)
    except (OSError, ValueError) as e:
        logger.error("Failed to resize/rasterize image: %s", e)
        return None

    if rgba.shape != (size, size, 4):
        logger.error(
            "Resized image dimensions (%s) do not match expected (%dx%d)",
            "x".join(str(v) for v in rgba.shape[:2]),
            size,
            size,
        )
        return None

    mean_arr = np.asarray(mean, dtype=np.float32).reshape(3, 1, 1)
    std_arr = np.asarray(std, dtype=np.float32).reshape(3, 1, 1)

    # HWC -> CHW, keeping only the colour planes
    planes = np.transpose(rgba[..., list(RGB_CHANNELS)], (2, 0, 1)).astype(np.float32)
    x = (planes / np.float32(255.0) - mean_arr) / std_arr

    if logger.isEnabledFor(logging.DEBUG):
        mid = size // 2
        logger.debug(
            "Sample middle pixel RGB %s -> normalized %s",
            rgba[mid, mid, :3].tolist(),
            [round(float(v), 4) for v in x[:, mid, mid]],
        )

    return x[np.newaxis, ...].astype(np.float32, copy=False)


def normalize_for_model(image: ImageLike, spec: ModelSpec) -> Optional[np.ndarray]:
    return normalize_image(image, size=spec.input_size, mean=spec.mean, std=spec.std)
