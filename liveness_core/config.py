"""Configuration: per-request pipeline switches and process settings.

`PipelineConfig` holds exactly the three switches a caller may flip.
`Settings` describes model artifacts, the inference thread hint and the face
detector; it can be loaded from YAML.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, is_dataclass, replace
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

import yaml

IMAGENET_MEAN: Tuple[float, float, float] = (0.485, 0.456, 0.406)
IMAGENET_STD: Tuple[float, float, float] = (0.229, 0.224, 0.225)

LIVENESS_MODEL_NAME = "Liveliness"
OCCLUSION_MODEL_NAME = "FaceOcclusion"

MODELS_DIR_ENV = "LIVENESS_MODELS_DIR"


@dataclass(frozen=True)
class PipelineConfig:
    skip_quality_check: bool = False
    skip_occlusion_check: bool = False
    debug_logging: bool = False

    @staticmethod
    def builder() -> "PipelineConfigBuilder":
        return PipelineConfigBuilder()


class PipelineConfigBuilder:
    """Fluent builder for `PipelineConfig`."""

    def __init__(self) -> None:
        self._skip_quality_check = False
        self._skip_occlusion_check = False
        self._debug_logging = False

    def skip_quality_check(self, skip: bool = True) -> "PipelineConfigBuilder":
        self._skip_quality_check = bool(skip)
        return self

    def skip_occlusion_check(self, skip: bool = True) -> "PipelineConfigBuilder":
        self._skip_occlusion_check = bool(skip)
        return self

    def debug_logging(self, enabled: bool = True) -> "PipelineConfigBuilder":
        self._debug_logging = bool(enabled)
        return self

    def build(self) -> PipelineConfig:
        return PipelineConfig(
            skip_quality_check=self._skip_quality_check,
            skip_occlusion_check=self._skip_occlusion_check,
            debug_logging=self._debug_logging,
        )


@dataclass(frozen=True)
class ModelSpec:
    name: str
    input_size: int = 224
    # RGB order, matching the planar tensor contract
    mean: Tuple[float, float, float] = IMAGENET_MEAN
    std: Tuple[float, float, float] = IMAGENET_STD


@dataclass(frozen=True)
class FaceDetectorConfig:
    # "fast" -> BlazeFace short range, "accurate" -> full range
    mode: Literal["fast", "accurate"] = "fast"
    min_face_size: float = 0.2
    min_confidence: float = 0.5
    timeout_s: float = 5.0


@dataclass(frozen=True)
class Settings:
    models_dir: str = str(Path(__file__).resolve().parent / "models")
    intra_op_num_threads: int = 1
    liveness_model: ModelSpec = field(default_factory=lambda: ModelSpec(name=LIVENESS_MODEL_NAME))
    occlusion_model: ModelSpec = field(default_factory=lambda: ModelSpec(name=OCCLUSION_MODEL_NAME))
    face_detector: FaceDetectorConfig = field(default_factory=FaceDetectorConfig)


def _merge(dc_obj, cfg: Mapping[str, Any]):
    """Return a copy of a frozen dataclass with known keys from `cfg` applied."""
    if not isinstance(cfg, Mapping):
        return dc_obj
    updates: Dict[str, Any] = {}
    for f in fields(dc_obj):
        if f.name not in cfg:
            continue
        cur = getattr(dc_obj, f.name)
        value = cfg[f.name]
        if is_dataclass(cur) and isinstance(value, Mapping):
            updates[f.name] = _merge(cur, value)
        elif isinstance(cur, tuple) and isinstance(value, (list, tuple)):
            updates[f.name] = tuple(float(v) for v in value)
        else:
            updates[f.name] = value
    return replace(dc_obj, **updates)


def settings_from_dict(cfg: Optional[Mapping[str, Any]]) -> Settings:
    settings = _merge(Settings(), cfg or {})
    env_dir = os.getenv(MODELS_DIR_ENV)
    if env_dir:
        settings = replace(settings, models_dir=str(Path(env_dir).expanduser().resolve()))
    return settings


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Load settings from a YAML file; defaults when no path is given.

    Raises:
        FileNotFoundError: if `config_path` is given and does not exist.
    """
    if config_path is None:
        return settings_from_dict({})

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return settings_from_dict(raw)
