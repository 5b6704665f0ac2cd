"""Quality gate: brightness, sharpness and face presence.

Both pixel scores are deterministic functions of the image. The face flag
comes from an injected detector.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from PIL import Image, ImageFilter

from ..errors import ErrorKind, LivenessError
from .contracts import QualityResult, clamp01
from .face import FaceDetector
from .image import ImageLike, as_pil_image, rgb_array, validate_image

logger = logging.getLogger(__name__)

# Mean luma breakpoints (0..255)
BRIGHTNESS_TOO_DARK = 40.0
BRIGHTNESS_SOMEWHAT_DARK = 80.0
BRIGHTNESS_GOOD_UPPER = 180.0
BRIGHTNESS_SOMEWHAT_BRIGHT = 220.0

# Edge-intensity proxy breakpoints
SHARPNESS_VERY_BLURRY = 5.0
SHARPNESS_SOMEWHAT_BLURRY = 10.0
SHARPNESS_GOOD_UPPER = 50.0
SHARPNESS_TOO_DETAILED = 100.0

SAMPLES_PER_AXIS = 50
MIN_SHARPNESS_SIZE = 10
EDGE_SCALE = 0.5


def sample_stride(width: int, height: int) -> int:
    return max(1, min(width, height) // SAMPLES_PER_AXIS)


def average_brightness(rgb: np.ndarray) -> float:
    """Mean integer luma over a strided grid of an (H, W, 3) uint8 array."""
    h, w = rgb.shape[:2]
    if h == 0 or w == 0:
        return 0.0
    step = sample_stride(w, h)
    samples = rgb[::step, ::step, :3].astype(np.int64)
    # integer weights truncate the real-valued luma; a float32 sum can land one lower
    luma = (299 * samples[..., 0] + 587 * samples[..., 1] + 114 * samples[..., 2]) // 1000
    return float(luma.mean())


def brightness_score(avg: float) -> float:
    if avg < BRIGHTNESS_TOO_DARK:
        score = avg / BRIGHTNESS_TOO_DARK
    elif avg < BRIGHTNESS_SOMEWHAT_DARK:
        score = 0.5 + (avg - BRIGHTNESS_TOO_DARK) / 80.0
    elif avg < BRIGHTNESS_GOOD_UPPER:
        score = 1.0
    elif avg < BRIGHTNESS_SOMEWHAT_BRIGHT:
        score = 1.0 - (avg - BRIGHTNESS_GOOD_UPPER) / 80.0
    else:
        score = 0.5 - (avg - BRIGHTNESS_SOMEWHAT_BRIGHT) / 70.0
    return clamp01(score)


def sharpness_score(grad: float) -> float:
    if grad < SHARPNESS_VERY_BLURRY:
        score = grad / SHARPNESS_VERY_BLURRY
    elif grad < SHARPNESS_SOMEWHAT_BLURRY:
        score = 0.5 + (grad - SHARPNESS_VERY_BLURRY) / 10.0
    elif grad < SHARPNESS_GOOD_UPPER:
        score = 1.0
    elif grad < SHARPNESS_TOO_DETAILED:
        score = 1.0 - (grad - SHARPNESS_GOOD_UPPER) / 100.0
    else:
        # extremely noisy or artificially sharpened
        score = 0.5
    return clamp01(score)


def edge_gradient(image: Image.Image) -> float:
    """Gradient proxy: half the mean brightness of the edge image.

    Border pixels are dropped because the 3x3 kernel copies them unfiltered.
    """
    edges = image.convert("L").filter(ImageFilter.FIND_EDGES)
    w, h = edges.size
    interior = np.asarray(edges, dtype=np.uint8)[1 : h - 1, 1 : w - 1]
    if interior.size == 0:
        return 0.0
    rgb = np.repeat(interior[..., np.newaxis], 3, axis=2)
    return average_brightness(rgb) * EDGE_SCALE


def assess_quality(image: ImageLike, has_face: bool) -> QualityResult:
    """Score an image given the external face-presence flag.

    Raises:
        LivenessError(QUALITY_CHECK): if the image fails validation.
    """
    if not validate_image(image):
        raise LivenessError(ErrorKind.QUALITY_CHECK, "Invalid image provided")

    img = as_pil_image(image)
    w, h = img.size

    avg = average_brightness(rgb_array(img))
    b_score = brightness_score(avg)

    if w < MIN_SHARPNESS_SIZE or h < MIN_SHARPNESS_SIZE:
        logger.warning("Image too small for reliable sharpness calculation")
        grad: Optional[float] = None
        s_score = 0.5
    else:
        grad = edge_gradient(img)
        s_score = sharpness_score(grad)

    result = QualityResult.from_scores(
        b_score, s_score, has_face, raw_brightness=avg, raw_sharpness=grad
    )
    logger.debug(
        "Quality: brightness=%.3f (Y=%.1f) sharpness=%.3f face=%s overall=%.3f",
        result.brightness_score,
        avg,
        result.sharpness_score,
        has_face,
        result.overall_score,
    )
    return result


class QualityChecker:
    """Quality gate bound to a face detector."""

    def __init__(self, face_detector: FaceDetector):
        self.face_detector = face_detector

    def check(self, image: ImageLike) -> QualityResult:
        w, h = getattr(as_pil_image(image), "size", (0, 0))
        logger.debug("Checking image quality for image: %dx%d", w, h)

        if not validate_image(image):
            raise LivenessError(ErrorKind.QUALITY_CHECK, "Invalid image provided")

        try:
            has_face = bool(self.face_detector.detect(image))
        except LivenessError as e:
            logger.error("Error in quality check: %s", e)
            raise LivenessError(ErrorKind.QUALITY_CHECK, f"Error in quality check: {e}", e) from e
        except Exception as e:
            logger.error("Error in quality check: %s", e)
            cause = LivenessError(ErrorKind.FACE_DETECTION, f"Face detection failed: {e}", e)
            raise LivenessError(ErrorKind.QUALITY_CHECK, f"Error in quality check: {e}", cause) from cause

        return assess_quality(image, has_face)

    def close(self) -> None:
        close = getattr(self.face_detector, "close", None)
        if callable(close):
            close()
