"""Face liveness core: on-device passive liveness for a single face image.

An image passes through validation, an optional quality gate (brightness,
sharpness, face presence), an optional occlusion gate (hand / mask) and a
liveness classifier. Negative outcomes come back as `LivenessResult` values;
infrastructure failures raise `LivenessError`.
"""

from .api import VERSION as __version__
from .api import build_pipeline, detect_liveness, get_version
from .config import PipelineConfig, PipelineConfigBuilder, Settings, load_settings
from .errors import ErrorKind, LivenessError
from .logging_context import LoggingContext, get_logging_context, setup_logging
from .pipeline import DetectionResult, LivenessPipeline, LivenessResult, QualityResult

__all__ = [
    "__version__",
    "build_pipeline",
    "detect_liveness",
    "get_version",
    "PipelineConfig",
    "PipelineConfigBuilder",
    "Settings",
    "load_settings",
    "ErrorKind",
    "LivenessError",
    "LoggingContext",
    "get_logging_context",
    "setup_logging",
    "DetectionResult",
    "LivenessPipeline",
    "LivenessResult",
    "QualityResult",
]
