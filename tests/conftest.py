"""Shared fixtures: fake inference engine, fake face detector, synthetic images."""

from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional, Sequence

import numpy as np
import pytest
from PIL import Image

from liveness_core.config import LIVENESS_MODEL_NAME, OCCLUSION_MODEL_NAME, PipelineConfig, Settings
from liveness_core.pipeline.orchestrator import LivenessPipeline


class FakeEngine:
    """In-memory engine: each model id maps to a fixed output vector."""

    def __init__(
        self,
        outputs: Optional[Dict[str, Sequence[float]]] = None,
        fail_load=(),
        fail_run=(),
        run_delay: float = 0.0,
    ):
        self.outputs = dict(outputs or {})
        self.fail_load = set(fail_load)
        self.fail_run = set(fail_run)
        self.run_delay = run_delay
        self.load_calls: List[str] = []
        self.run_calls: List[str] = []
        self.last_input: Optional[np.ndarray] = None
        self._active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def load(self, model_identifier: str):
        self.load_calls.append(model_identifier)
        if model_identifier in self.fail_load:
            raise FileNotFoundError(f"Model not found: {model_identifier}")
        return model_identifier

    def input_names(self, session) -> List[str]:
        return ["input"]

    def output_names(self, session) -> List[str]:
        return ["output"]

    def run(self, session, input_tensor: np.ndarray) -> np.ndarray:
        with self._lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            if self.run_delay:
                time.sleep(self.run_delay)
            self.run_calls.append(session)
            if session in self.fail_run:
                raise RuntimeError(f"ort run failed: {session}")
            self.last_input = input_tensor
            return np.asarray(self.outputs[session], dtype=np.float32)
        finally:
            with self._lock:
                self._active -= 1


class FakeFaceDetector:
    def __init__(self, has_face: bool = True, error: Optional[Exception] = None):
        self.has_face = has_face
        self.error = error
        self.calls = 0
        self.closed = False

    def detect(self, image) -> bool:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.has_face

    def close(self) -> None:
        self.closed = True


def solid_image(size=(128, 128), color=(128, 128, 128), mode="RGB") -> Image.Image:
    return Image.new(mode, size, color)


@pytest.fixture
def gray_image() -> Image.Image:
    return solid_image()


@pytest.fixture
def noise_image() -> Image.Image:
    rng = np.random.default_rng(0)
    return Image.fromarray(rng.integers(0, 256, size=(128, 128, 3), dtype=np.uint8))


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine(
        outputs={
            LIVENESS_MODEL_NAME: [2.0],
            OCCLUSION_MODEL_NAME: [0.05, 0.9, 0.05],
        }
    )


@pytest.fixture
def face_detector() -> FakeFaceDetector:
    return FakeFaceDetector(has_face=True)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(models_dir=str(tmp_path))


@pytest.fixture
def make_pipeline(engine, face_detector, settings):
    created = []

    def _make(config: PipelineConfig = PipelineConfig(), **overrides) -> LivenessPipeline:
        p = LivenessPipeline.from_settings(
            config,
            settings,
            engine=overrides.get("engine", engine),
            face_detector=overrides.get("face_detector", face_detector),
        )
        created.append(p)
        return p

    yield _make
    for p in created:
        p.close()
