"""Face presence detection.

The quality gate only needs a yes/no answer. Any object with
`detect(image) -> bool` can be injected; `MediaPipeFaceDetector` is the
default backend.

mediapipe is optional. If it is selected and not installed we fail loudly;
a silent fallback would make every image look face-less.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import List, Protocol

import numpy as np

from ..config import FaceDetectorConfig
from ..errors import ErrorKind, LivenessError
from .image import ImageLike, rgb_array

logger = logging.getLogger(__name__)

BLAZEFACE_VERSION = "mediapipe>=0.10.9,<0.10.15"

# BlazeFace model_selection: 0 = short range (fast), 1 = full range (accurate)
_MODEL_SELECTION = {"fast": 0, "accurate": 1}


class FaceDetector(Protocol):
    def detect(self, image: ImageLike) -> bool: ...


class MediaPipeFaceDetector:
    """BlazeFace presence check with a bounded wait per call."""

    def __init__(self, cfg: FaceDetectorConfig = FaceDetectorConfig()):
        if cfg.mode not in _MODEL_SELECTION:
            raise ValueError(f"Unknown face detector mode: {cfg.mode}")
        self.cfg = cfg
        self._detector = None
        self._init_lock = threading.Lock()
        # One worker: the mediapipe graph is not re-entrant
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="face-detect")

    def _lazy_init(self):
        with self._init_lock:
            if self._detector is not None:
                return self._detector
            try:
                import mediapipe as mp
            except ImportError as e:
                raise LivenessError(
                    ErrorKind.FACE_DETECTION,
                    f"mediapipe is required for face detection. Install with: pip install '{BLAZEFACE_VERSION}'",
                    e,
                ) from e
            self._detector = mp.solutions.face_detection.FaceDetection(
                model_selection=_MODEL_SELECTION[self.cfg.mode],
                min_detection_confidence=self.cfg.min_confidence,
            )
            logger.debug(
                "Face detector ready (mode=%s, min_face_size=%.2f)", self.cfg.mode, self.cfg.min_face_size
            )
            return self._detector

    def _relative_widths(self, rgb: np.ndarray) -> List[float]:
        detector = self._lazy_init()
        results = detector.process(rgb)
        widths: List[float] = []
        if results and results.detections:
            for det in results.detections:
                box = det.location_data.relative_bounding_box
                x_min = max(0.0, box.xmin)
                x_max = min(1.0, box.xmin + box.width)
                widths.append(max(0.0, x_max - x_min))
        return widths

    def detect(self, image: ImageLike) -> bool:
        rgb = rgb_array(image)
        future = self._executor.submit(self._relative_widths, rgb)
        try:
            widths = future.result(timeout=self.cfg.timeout_s)
        except FutureTimeout as e:
            raise LivenessError(
                ErrorKind.FACE_DETECTION, f"Face detection timed out after {self.cfg.timeout_s:.1f}s", e
            ) from e
        except LivenessError:
            raise
        except Exception as e:
            logger.error("Face detection failed: %s", e)
            raise LivenessError(ErrorKind.FACE_DETECTION, f"Face detection failed: {e}", e) from e

        found = any(w >= self.cfg.min_face_size for w in widths)
        logger.debug(
            "Face detection result: %s (%d candidates)", "Face detected" if found else "No face detected", len(widths)
        )
        return found

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        with self._init_lock:
            if self._detector is not None:
                self._detector.close()
                self._detector = None
