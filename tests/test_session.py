"""Model session state machine and the onnxruntime engine adapter."""

import threading

import numpy as np
import pytest

from liveness_core.errors import ErrorKind, LivenessError
from liveness_core.pipeline.session import ModelSession, ModelState, OnnxRuntimeEngine

from conftest import FakeEngine


def test_lazy_load_on_first_use():
    engine = FakeEngine(outputs={"m": [1.0]})
    session = ModelSession(engine, "m")
    assert session.state == ModelState.UNLOADED
    assert engine.load_calls == []

    out = session.run(np.zeros((1, 3, 4, 4), dtype=np.float32))
    assert session.state == ModelState.READY
    assert engine.load_calls == ["m"]
    assert out.dtype == np.float32
    assert out.tolist() == [1.0]


def test_failed_load_is_sticky_until_reload():
    engine = FakeEngine(outputs={"m": [1.0]}, fail_load={"m"})
    session = ModelSession(engine, "m")

    assert session.ensure_loaded() is False
    assert session.ensure_loaded() is False
    assert session.state == ModelState.FAILED
    assert engine.load_calls == ["m"]
    assert session.last_error.kind == ErrorKind.MODEL_LOADING
    assert isinstance(session.last_error.cause, FileNotFoundError)

    with pytest.raises(LivenessError) as exc:
        session.run(np.zeros(1, dtype=np.float32))
    assert exc.value.kind == ErrorKind.MODEL_LOADING

    engine.fail_load.clear()
    assert session.reload() is True
    assert session.state == ModelState.READY
    assert session.last_error is None
    assert engine.load_calls == ["m", "m"]


def test_reload_when_ready_is_noop():
    engine = FakeEngine(outputs={"m": [1.0]})
    session = ModelSession(engine, "m")
    assert session.ensure_loaded()
    assert session.reload() is True
    assert engine.load_calls == ["m"]


def test_reload_retries_once():
    engine = FakeEngine(fail_load={"m"})
    session = ModelSession(engine, "m")
    assert session.reload() is False
    assert engine.load_calls == ["m"]


def test_runs_are_serialized():
    engine = FakeEngine(outputs={"m": [0.5]}, run_delay=0.02)
    session = ModelSession(engine, "m")
    x = np.zeros((1, 3, 4, 4), dtype=np.float32)

    threads = [threading.Thread(target=session.run, args=(x,)) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(engine.run_calls) == 4
    assert engine.max_active == 1


def test_close_returns_to_unloaded():
    engine = FakeEngine(outputs={"m": [1.0]})
    session = ModelSession(engine, "m")
    session.ensure_loaded()
    session.close()
    assert session.state == ModelState.UNLOADED


def test_onnx_engine_resolves_by_name(tmp_path):
    engine = OnnxRuntimeEngine(str(tmp_path))
    assert engine.resolve("Liveliness") == (tmp_path / "Liveliness.onnx").resolve()


def test_onnx_engine_missing_model(tmp_path):
    pytest.importorskip("onnxruntime")
    session = ModelSession(OnnxRuntimeEngine(str(tmp_path)), "Missing")
    assert session.ensure_loaded() is False
    assert isinstance(session.last_error.cause, FileNotFoundError)
