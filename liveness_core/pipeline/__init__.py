"""Pipeline package: validation, preprocessing, quality/occlusion/liveness gates and orchestration."""

from .contracts import LIVE, SPOOF, DetectionResult, LivenessResult, QualityResult
from .image import load_image, validate_image
from .preprocess import normalize_image, resize_image
from .face import FaceDetector, MediaPipeFaceDetector
from .quality import QualityChecker, assess_quality, brightness_score, sharpness_score
from .session import InferenceEngine, ModelSession, ModelState, OnnxRuntimeEngine
from .occlusion import OcclusionDetector, classify_occlusion
from .liveness import LivenessDetector, classify_logit
from .orchestrator import LivenessPipeline, PipelineState

__all__ = [
    "LIVE",
    "SPOOF",
    "DetectionResult",
    "LivenessResult",
    "QualityResult",
    "load_image",
    "validate_image",
    "normalize_image",
    "resize_image",
    "FaceDetector",
    "MediaPipeFaceDetector",
    "QualityChecker",
    "assess_quality",
    "brightness_score",
    "sharpness_score",
    "InferenceEngine",
    "ModelSession",
    "ModelState",
    "OnnxRuntimeEngine",
    "OcclusionDetector",
    "classify_occlusion",
    "LivenessDetector",
    "classify_logit",
    "LivenessPipeline",
    "PipelineState",
]
