"""Error taxonomy.

A single tagged exception type is raised for every infrastructure failure.
Negative verdicts (poor quality, occlusion, spoof) are results, never errors.
Dispatch on `LivenessError.kind`.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MODEL_LOADING = "model_loading"
    INVALID_IMAGE = "invalid_image"
    FACE_DETECTION = "face_detection"
    LIVENESS = "liveness"
    OCCLUSION_DETECTION = "occlusion_detection"
    QUALITY_CHECK = "quality_check"

    @property
    def code(self) -> int:
        return _CODES[self]


_CODES = {
    ErrorKind.MODEL_LOADING: 1001,
    ErrorKind.INVALID_IMAGE: 1002,
    ErrorKind.FACE_DETECTION: 1003,
    ErrorKind.LIVENESS: 1004,
    ErrorKind.OCCLUSION_DETECTION: 1005,
    ErrorKind.QUALITY_CHECK: 1006,
}


class LivenessError(Exception):
    def __init__(self, kind: ErrorKind, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def code(self) -> int:
        return self.kind.code

    def to_dict(self) -> dict:
        out = {"kind": self.kind.value, "code": self.code, "message": self.message}
        if self.cause is not None:
            out["cause"] = str(self.cause)
        return out

    def __repr__(self) -> str:
        return f"LivenessError(kind={self.kind.value!r}, message={self.message!r})"
