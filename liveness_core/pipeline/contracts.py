"""Result records produced by the pipeline stages.

All records are frozen: built once per request and handed to the caller as
plain values.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Literal, Optional, Tuple

ACCEPTABLE_QUALITY = 0.5

BRIGHTNESS_WEIGHT = 0.3
SHARPNESS_WEIGHT = 0.3
FACE_WEIGHT = 0.4

OcclusionLabel = Literal["hand_over_face", "normal", "with_mask"]
LivenessLabel = Literal["Live", "Spoof"]

LIVE = "Live"
SPOOF = "Spoof"


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class QualityResult:
    brightness_score: float
    sharpness_score: float
    face_score: float
    overall_score: float
    has_face: bool
    raw_brightness: Optional[float] = None
    raw_sharpness: Optional[float] = None

    @classmethod
    def from_scores(
        cls,
        brightness_score: float,
        sharpness_score: float,
        has_face: bool,
        raw_brightness: Optional[float] = None,
        raw_sharpness: Optional[float] = None,
    ) -> "QualityResult":
        brightness_score = clamp01(brightness_score)
        sharpness_score = clamp01(sharpness_score)
        face_score = 1.0 if has_face else 0.0
        if has_face:
            overall = clamp01(
                BRIGHTNESS_WEIGHT * brightness_score
                + SHARPNESS_WEIGHT * sharpness_score
                + FACE_WEIGHT * face_score
            )
        else:
            overall = 0.0
        return cls(
            brightness_score=brightness_score,
            sharpness_score=sharpness_score,
            face_score=face_score,
            overall_score=overall,
            has_face=bool(has_face),
            raw_brightness=raw_brightness,
            raw_sharpness=raw_sharpness,
        )

    def is_acceptable(self) -> bool:
        return self.has_face and self.overall_score >= ACCEPTABLE_QUALITY

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DetectionResult:
    """Occlusion verdict."""

    label: OcclusionLabel
    confidence: float
    model_ready: bool = True
    probabilities: Optional[Tuple[float, float, float]] = None

    @property
    def is_normal(self) -> bool:
        return self.label == "normal"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LivenessResult:
    label: LivenessLabel
    confidence: float
    failure_reason: Optional[str] = None
    logit: Optional[float] = None
    quality: Optional[QualityResult] = None
    occlusion: Optional[DetectionResult] = None

    @property
    def is_live(self) -> bool:
        return self.label == LIVE

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["is_live"] = self.is_live
        return out
