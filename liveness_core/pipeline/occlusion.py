"""Occlusion gate: hand over face / normal / mask.

The model emits three probabilities in a fixed class order. A `normal`
argmax below 0.7 is treated as ambiguous and reassigned to the stronger of
the two occlusion classes.

NOTE: the 0.7 reassignment overrides the model's own argmax. It is kept
as-is pending review of the occlusion model's calibration.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from ..config import ModelSpec, OCCLUSION_MODEL_NAME
from ..errors import ErrorKind, LivenessError
from .contracts import DetectionResult
from .image import ImageLike
from .preprocess import normalize_for_model
from .session import ModelSession

logger = logging.getLogger(__name__)

CLASS_NAMES = ("hand_over_face", "normal", "with_mask")
HAND_OVER_FACE_INDEX = 0
NORMAL_INDEX = 1
WITH_MASK_INDEX = 2
EXPECTED_CLASS_COUNT = 3

NORMAL_CONFIDENCE_THRESHOLD = 0.7
MODEL_NOT_READY_CONFIDENCE = 0.7


def model_not_ready_result() -> DetectionResult:
    return DetectionResult(label="normal", confidence=MODEL_NOT_READY_CONFIDENCE, model_ready=False)


def classify_occlusion(probabilities: Sequence[float]) -> DetectionResult:
    """Apply argmax plus the low-confidence `normal` reassignment.

    Raises:
        ValueError: if `probabilities` does not hold exactly three values.
    """
    probs = np.asarray(probabilities, dtype=np.float32).reshape(-1)
    if probs.size != EXPECTED_CLASS_COUNT:
        raise ValueError(f"Invalid tensor size (actual: {probs.size}, expected: {EXPECTED_CLASS_COUNT})")

    for name, p in zip(CLASS_NAMES, probs):
        logger.debug("Class %s: %.4f", name, float(p))

    as_tuple = tuple(float(p) for p in probs)
    max_index = int(np.argmax(probs))
    max_prob = float(probs[max_index])

    if max_index == NORMAL_INDEX and max_prob < NORMAL_CONFIDENCE_THRESHOLD:
        mask_prob = float(probs[WITH_MASK_INDEX])
        hand_prob = float(probs[HAND_OVER_FACE_INDEX])
        if mask_prob > hand_prob:
            logger.debug("Reassigned to with_mask with probability: %.4f", mask_prob)
            return DetectionResult(label="with_mask", confidence=mask_prob, probabilities=as_tuple)
        logger.debug("Reassigned to hand_over_face with probability: %.4f", hand_prob)
        return DetectionResult(label="hand_over_face", confidence=hand_prob, probabilities=as_tuple)

    return DetectionResult(label=CLASS_NAMES[max_index], confidence=max_prob, probabilities=as_tuple)


class OcclusionDetector:
    def __init__(self, session: ModelSession, spec: Optional[ModelSpec] = None):
        self.session = session
        self.spec = spec or ModelSpec(name=OCCLUSION_MODEL_NAME)

    def detect(self, image: ImageLike) -> DetectionResult:
        """Classify occlusion; degrades to a model-not-ready `normal` answer.

        Raises:
            LivenessError(OCCLUSION_DETECTION): if the image cannot be normalized.
        """
        logger.debug("Starting face occlusion detection")

        if not self.session.ensure_loaded():
            logger.warning("Model not loaded, assuming normal face with low confidence")
            return model_not_ready_result()

        tensor = normalize_for_model(image, self.spec)
        if tensor is None:
            raise LivenessError(ErrorKind.OCCLUSION_DETECTION, "Failed to normalize image")

        try:
            output = self.session.run(tensor)
        except Exception as e:
            logger.warning("Occlusion inference unavailable (%s), assuming normal face with low confidence", e)
            return model_not_ready_result()

        if output.size != EXPECTED_CLASS_COUNT:
            logger.warning(
                "Invalid occlusion output size (actual: %d, expected: %d), assuming normal face",
                output.size,
                EXPECTED_CLASS_COUNT,
            )
            return model_not_ready_result()

        return classify_occlusion(output)

    def reload(self) -> bool:
        return self.session.reload()

    def close(self) -> None:
        self.session.close()
