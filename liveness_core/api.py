"""Top-level entry points."""

from __future__ import annotations

from typing import Optional

from .config import PipelineConfig, Settings
from .pipeline.contracts import LivenessResult
from .pipeline.face import FaceDetector
from .pipeline.image import ImageLike
from .pipeline.orchestrator import LivenessPipeline
from .pipeline.session import InferenceEngine

VERSION = "0.1.0"


def build_pipeline(
    config: Optional[PipelineConfig] = None,
    settings: Optional[Settings] = None,
    engine: Optional[InferenceEngine] = None,
    face_detector: Optional[FaceDetector] = None,
) -> LivenessPipeline:
    return LivenessPipeline.from_settings(
        config or PipelineConfig(),
        settings,
        engine=engine,
        face_detector=face_detector,
    )


def detect_liveness(
    image: ImageLike,
    config: Optional[PipelineConfig] = None,
    *,
    pipeline: Optional[LivenessPipeline] = None,
) -> LivenessResult:
    """Classify one image as Live or Spoof.

    With no `pipeline`, a default one is built for this call and closed after.

    Raises:
        LivenessError: on invalid input or infrastructure failure.
    """
    if pipeline is not None:
        return pipeline.run(image)
    with build_pipeline(config) as p:
        return p.run(image)


def get_version() -> str:
    return VERSION
