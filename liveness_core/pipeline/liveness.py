"""Liveness gate: single logit -> Live/Spoof with confidence for the label."""

from __future__ import annotations

import logging
import math
from typing import Optional

from ..config import LIVENESS_MODEL_NAME, ModelSpec
from ..errors import ErrorKind, LivenessError
from .contracts import LIVE, SPOOF, LivenessResult
from .image import ImageLike, validate_image
from .preprocess import normalize_for_model
from .session import ModelSession

logger = logging.getLogger(__name__)

LIVE_THRESHOLD = 0.5


def sigmoid(z: float) -> float:
    # split form avoids overflow in exp for large |z|
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


def classify_logit(logit: float) -> LivenessResult:
    conf = sigmoid(float(logit))
    label = LIVE if conf > LIVE_THRESHOLD else SPOOF
    display_conf = conf if label == LIVE else 1.0 - conf
    logger.debug("Final prediction: %s with display confidence: %.4f", label, display_conf)
    return LivenessResult(
        label=label,
        confidence=display_conf,
        failure_reason=None if label == LIVE else "liveness: spoof",
        logit=float(logit),
    )


class LivenessDetector:
    def __init__(self, session: ModelSession, spec: Optional[ModelSpec] = None):
        self.session = session
        self.spec = spec or ModelSpec(name=LIVENESS_MODEL_NAME)

    def infer(self, image: ImageLike) -> LivenessResult:
        """Run the liveness model.

        Raises:
            LivenessError(LIVENESS): when no answer can be produced. The cause
                is the session's load error or the engine's run error.
        """
        if not validate_image(image):
            logger.error("Invalid input image")
            raise LivenessError(ErrorKind.LIVENESS, "Invalid input image")

        if not self.session.ensure_loaded():
            logger.error("Model not loaded")
            raise LivenessError(ErrorKind.LIVENESS, "Model not loaded", self.session.last_error)

        tensor = normalize_for_model(image, self.spec)
        if tensor is None:
            logger.error("Failed to normalize image")
            raise LivenessError(ErrorKind.LIVENESS, "Failed to normalize image")

        try:
            output = self.session.run(tensor)
        except Exception as e:
            logger.error("Inference failed: %s", e)
            raise LivenessError(ErrorKind.LIVENESS, f"Inference failed: {e}", e) from e

        if output.size == 0:
            logger.error("Empty output from model")
            raise LivenessError(ErrorKind.LIVENESS, "Empty output from model")

        logit = float(output[0])
        logger.debug("Raw model output (logit): %.4f", logit)
        return classify_logit(logit)

    def predict(self, image: ImageLike) -> Optional[LivenessResult]:
        """Like `infer`, but None when no answer can be produced."""
        try:
            return self.infer(image)
        except LivenessError:
            return None

    def reload(self) -> bool:
        return self.session.reload()

    def close(self) -> None:
        self.session.close()
