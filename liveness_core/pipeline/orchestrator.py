"""Pipeline orchestrator.

    VALIDATING -> QUALITY_GATE -> OCCLUSION_GATE -> LIVENESS_GATE -> DONE
         |               |                |                |
         +---------------+----------------+----------------+--> ERROR

A gate that rejects the image ends the request with a negative
`LivenessResult`. Only infrastructure failures raise `LivenessError`.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Callable, Optional

from ..config import PipelineConfig, Settings
from ..errors import ErrorKind, LivenessError
from ..logging_context import LoggingContext, get_logging_context
from .contracts import SPOOF, LivenessResult
from .face import FaceDetector, MediaPipeFaceDetector
from .image import ImageLike, as_pil_image, validate_image
from .liveness import LivenessDetector
from .occlusion import OcclusionDetector
from .quality import QualityChecker
from .session import InferenceEngine, ModelSession, OnnxRuntimeEngine

logger = logging.getLogger(__name__)

Callback = Callable[[Optional[LivenessResult], Optional[BaseException]], None]


class PipelineState(str, Enum):
    VALIDATING = "validating"
    QUALITY_GATE = "quality_gate"
    OCCLUSION_GATE = "occlusion_gate"
    LIVENESS_GATE = "liveness_gate"
    DONE = "done"
    ERROR = "error"


class LivenessPipeline:
    def __init__(
        self,
        config: PipelineConfig = PipelineConfig(),
        *,
        liveness_detector: LivenessDetector,
        occlusion_detector: Optional[OcclusionDetector] = None,
        quality_checker: Optional[QualityChecker] = None,
        logging_context: Optional[LoggingContext] = None,
        max_workers: int = 1,
    ):
        if not config.skip_quality_check and quality_checker is None:
            raise ValueError("quality_checker is required unless skip_quality_check is set")
        if not config.skip_occlusion_check and occlusion_detector is None:
            raise ValueError("occlusion_detector is required unless skip_occlusion_check is set")

        self.config = config
        self.liveness_detector = liveness_detector
        self.occlusion_detector = occlusion_detector
        self.quality_checker = quality_checker

        self.logging_context = logging_context or get_logging_context()
        self.logging_context.set_debug_enabled(config.debug_logging)

        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._local = threading.local()

    @classmethod
    def from_settings(
        cls,
        config: PipelineConfig = PipelineConfig(),
        settings: Optional[Settings] = None,
        *,
        engine: Optional[InferenceEngine] = None,
        face_detector: Optional[FaceDetector] = None,
        logging_context: Optional[LoggingContext] = None,
    ) -> "LivenessPipeline":
        """Wire default collaborators. Models and detector load lazily."""
        settings = settings or Settings()
        engine = engine or OnnxRuntimeEngine(settings.models_dir, settings.intra_op_num_threads)

        liveness = LivenessDetector(ModelSession(engine, settings.liveness_model.name), settings.liveness_model)
        occlusion = None
        if not config.skip_occlusion_check:
            occlusion = OcclusionDetector(ModelSession(engine, settings.occlusion_model.name), settings.occlusion_model)
        quality = None
        if not config.skip_quality_check:
            quality = QualityChecker(face_detector or MediaPipeFaceDetector(settings.face_detector))

        return cls(
            config,
            liveness_detector=liveness,
            occlusion_detector=occlusion,
            quality_checker=quality,
            logging_context=logging_context,
        )

    # ---- state ----
    @property
    def state(self) -> Optional[PipelineState]:
        """State of the most recent request on the calling thread."""
        return getattr(self._local, "state", None)

    def _enter(self, state: PipelineState) -> None:
        self._local.state = state
        logger.debug("pipeline:%s", state.value)

    # ---- run ----
    def run(self, image: ImageLike) -> LivenessResult:
        """Run all enabled gates on one image.

        Raises:
            LivenessError: on any infrastructure failure.
        """
        try:
            result = self._run(image)
        except LivenessError as e:
            self._enter(PipelineState.ERROR)
            logger.error("Liveness pipeline failed [%s]: %s", e.kind.value, e.message)
            raise
        self._enter(PipelineState.DONE)
        logger.info(
            "Liveness result: %s (confidence=%.3f%s)",
            result.label,
            result.confidence,
            f", reason={result.failure_reason}" if result.failure_reason else "",
        )
        return result

    def _run(self, image: ImageLike) -> LivenessResult:
        self._enter(PipelineState.VALIDATING)
        if not validate_image(image):
            raise LivenessError(ErrorKind.INVALID_IMAGE, "Invalid image: failed size or integrity validation")
        img = as_pil_image(image)

        quality = None
        if not self.config.skip_quality_check:
            self._enter(PipelineState.QUALITY_GATE)
            quality = self.quality_checker.check(img)
            if not quality.is_acceptable():
                reason = "quality: no_face" if not quality.has_face else "quality: low_score"
                return LivenessResult(
                    label=SPOOF,
                    confidence=1.0 - quality.overall_score,
                    failure_reason=reason,
                    quality=quality,
                )

        occlusion = None
        if not self.config.skip_occlusion_check:
            self._enter(PipelineState.OCCLUSION_GATE)
            occlusion = self.occlusion_detector.detect(img)
            if not occlusion.is_normal:
                return LivenessResult(
                    label=SPOOF,
                    confidence=occlusion.confidence,
                    failure_reason=f"occlusion: {occlusion.label}",
                    quality=quality,
                    occlusion=occlusion,
                )

        self._enter(PipelineState.LIVENESS_GATE)
        result = self.liveness_detector.infer(img)
        return LivenessResult(
            label=result.label,
            confidence=result.confidence,
            failure_reason=result.failure_reason,
            logit=result.logit,
            quality=quality,
            occlusion=occlusion,
        )

    # ---- background execution ----
    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="liveness")
            return self._executor

    def submit(self, image: ImageLike, callback: Optional[Callback] = None) -> Future:
        """Run on the worker pool; `callback(result, error)` fires exactly once."""
        future = self._get_executor().submit(self.run, image)
        if callback is not None:

            def _done(f: Future) -> None:
                error = f.exception()
                if error is not None:
                    callback(None, error)
                else:
                    callback(f.result(), None)

            future.add_done_callback(_done)
        return future

    # ---- lifecycle ----
    def reload_models(self) -> bool:
        ok = self.liveness_detector.reload()
        if self.occlusion_detector is not None:
            ok = self.occlusion_detector.reload() and ok
        return ok

    def close(self) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
        self.liveness_detector.close()
        if self.occlusion_detector is not None:
            self.occlusion_detector.close()
        if self.quality_checker is not None:
            self.quality_checker.close()

    def __enter__(self) -> "LivenessPipeline":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
