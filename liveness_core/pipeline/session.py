"""Inference engine collaborator and the model session state machine.

A `ModelSession` wraps one model artifact:

    UNLOADED -> LOADING -> READY
                        -> FAILED -> (reload) -> LOADING

First use loads lazily. A failed load stays FAILED until `reload()` is called;
`reload()` on a READY session is a no-op. Every inference call holds the
session's run lock, so concurrent requests sharing a session are serialized.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Protocol

import numpy as np

from ..errors import ErrorKind, LivenessError

logger = logging.getLogger(__name__)


class InferenceEngine(Protocol):
    def load(self, model_identifier: str) -> Any: ...

    def run(self, session: Any, input_tensor: np.ndarray) -> np.ndarray: ...

    def input_names(self, session: Any) -> List[str]: ...

    def output_names(self, session: Any) -> List[str]: ...


class OnnxRuntimeEngine:
    """ONNX Runtime on CPU with a fixed intra-op thread count."""

    def __init__(self, models_dir: str, intra_op_num_threads: int = 1):
        self.models_dir = Path(models_dir)
        self.intra_op_num_threads = intra_op_num_threads

    def resolve(self, model_identifier: str) -> Path:
        p = Path(model_identifier)
        if p.suffix == ".onnx" and p.exists():
            return p.resolve()
        return (self.models_dir / f"{model_identifier}.onnx").resolve()

    def load(self, model_identifier: str):
        import onnxruntime as rt

        model_path = self.resolve(model_identifier)
        if not model_path.exists():
            raise FileNotFoundError(f"Model not found at {model_path}")

        opts = rt.SessionOptions()
        opts.intra_op_num_threads = self.intra_op_num_threads
        opts.graph_optimization_level = rt.GraphOptimizationLevel.ORT_ENABLE_ALL
        session = rt.InferenceSession(str(model_path), sess_options=opts, providers=["CPUExecutionProvider"])
        logger.debug("Model loaded successfully from: %s", model_path)
        return session

    def input_names(self, session) -> List[str]:
        return [i.name for i in session.get_inputs()]

    def output_names(self, session) -> List[str]:
        return [o.name for o in session.get_outputs()]

    def run(self, session, input_tensor: np.ndarray) -> np.ndarray:
        inputs = self.input_names(session)
        outputs = self.output_names(session)
        if not inputs or not outputs:
            raise RuntimeError("Failed to get model input/output names")
        result = session.run([outputs[0]], {inputs[0]: input_tensor})
        return np.asarray(result[0])


class ModelState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ModelSession:
    def __init__(self, engine: InferenceEngine, model_identifier: str):
        self.engine = engine
        self.model_identifier = model_identifier
        self._state = ModelState.UNLOADED
        self._handle: Any = None
        self._last_error: Optional[LivenessError] = None
        self._state_lock = threading.Lock()
        self._run_lock = threading.Lock()

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ModelState.READY

    @property
    def last_error(self) -> Optional[LivenessError]:
        return self._last_error

    def _load_locked(self) -> None:
        self._state = ModelState.LOADING
        try:
            self._handle = self.engine.load(self.model_identifier)
        except Exception as e:
            self._handle = None
            self._state = ModelState.FAILED
            self._last_error = LivenessError(
                ErrorKind.MODEL_LOADING, f"Error loading model '{self.model_identifier}': {e}", e
            )
            logger.error("Error loading model '%s': %s", self.model_identifier, e)
            return
        self._state = ModelState.READY
        self._last_error = None

    def ensure_loaded(self) -> bool:
        """Load on first use. Does not retry a FAILED session."""
        with self._state_lock:
            if self._state == ModelState.UNLOADED:
                self._load_locked()
            return self._state == ModelState.READY

    def reload(self) -> bool:
        """Retry acquisition once if not ready; report readiness."""
        with self._state_lock:
            if self._state == ModelState.READY:
                return True
            self._load_locked()
            return self._state == ModelState.READY

    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        """Run the model and return its first output flattened to float32.

        Raises:
            LivenessError(MODEL_LOADING): if the session is not ready.
        """
        if not self.ensure_loaded():
            raise self._last_error or LivenessError(
                ErrorKind.MODEL_LOADING, f"Model '{self.model_identifier}' not loaded"
            )
        with self._run_lock:
            output = self.engine.run(self._handle, input_tensor)
        return np.asarray(output, dtype=np.float32).reshape(-1)

    def close(self) -> None:
        with self._state_lock:
            self._handle = None
            self._state = ModelState.UNLOADED
        logger.debug("Model session '%s' released", self.model_identifier)
