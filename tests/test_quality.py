"""Quality gate scoring."""

import numpy as np
import pytest

from liveness_core.errors import ErrorKind, LivenessError
from liveness_core.pipeline.contracts import QualityResult
from liveness_core.pipeline.quality import (
    QualityChecker,
    assess_quality,
    average_brightness,
    brightness_score,
    sample_stride,
    sharpness_score,
)

from conftest import FakeFaceDetector, solid_image

EPS = 1e-9


@pytest.mark.parametrize(
    "avg, expected",
    [
        (0.0, 0.0),
        (20.0, 0.5),
        (60.0, 0.75),
        (100.0, 1.0),
        (200.0, 0.75),
        (240.0, 0.5 - 20.0 / 70.0),
        (255.0, 0.0),
    ],
)
def test_brightness_bands(avg, expected):
    assert brightness_score(avg) == pytest.approx(expected)


@pytest.mark.parametrize("edge", [80.0, 180.0, 220.0])
def test_brightness_continuous_at_band_edges(edge):
    assert brightness_score(edge - EPS) == pytest.approx(brightness_score(edge), abs=1e-6)


@pytest.mark.parametrize(
    "grad, expected",
    [
        (0.0, 0.0),
        (2.5, 0.5),
        (7.5, 0.75),
        (30.0, 1.0),
        (75.0, 0.75),
        (150.0, 0.5),
    ],
)
def test_sharpness_bands(grad, expected):
    assert sharpness_score(grad) == pytest.approx(expected)


def test_scores_stay_in_unit_range():
    for v in np.linspace(0, 400, 81):
        assert 0.0 <= brightness_score(v) <= 1.0
        assert 0.0 <= sharpness_score(v) <= 1.0


def test_sample_stride():
    assert sample_stride(100, 100) == 2
    assert sample_stride(49, 1000) == 1
    assert sample_stride(500, 300) == 6


def test_average_brightness_uses_integer_luma():
    rgb = np.zeros((100, 100, 3), dtype=np.uint8)
    rgb[...] = (255, 0, 0)
    # 299 * 255 // 1000
    assert average_brightness(rgb) == 76.0


def test_uniform_gray_with_face(gray_image):
    q = assess_quality(gray_image, has_face=True)
    assert q.brightness_score == pytest.approx(1.0)
    assert q.sharpness_score == pytest.approx(0.0)
    assert q.face_score == 1.0
    assert q.overall_score == pytest.approx(0.7)
    assert q.is_acceptable()


def test_no_face_forces_zero_overall(gray_image):
    q = assess_quality(gray_image, has_face=False)
    assert q.overall_score == 0.0
    assert not q.is_acceptable()


@pytest.mark.parametrize("brightness", [0.0, 0.25, 0.5, 1.0, 1.5])
@pytest.mark.parametrize("sharpness", [-0.5, 0.0, 0.5, 1.0])
def test_no_face_overall_is_zero_for_any_scores(brightness, sharpness):
    q = QualityResult.from_scores(brightness, sharpness, False)
    assert q.overall_score == 0.0
    assert q.face_score == 0.0
    assert not q.is_acceptable()


def test_dark_image_is_not_acceptable():
    q = assess_quality(solid_image(color=(10, 10, 10)), has_face=True)
    assert q.brightness_score == pytest.approx(0.25)
    assert q.overall_score == pytest.approx(0.475)
    assert not q.is_acceptable()


def test_noise_has_edges(noise_image):
    q = assess_quality(noise_image, has_face=True)
    assert q.raw_sharpness > 0


def test_acceptability_threshold():
    assert QualityResult.from_scores(0.0, 0.5, True).is_acceptable()
    assert not QualityResult.from_scores(0.0, 0.0, True).is_acceptable()
    assert not QualityResult.from_scores(1.0, 1.0, False).is_acceptable()


def test_from_scores_clamps_inputs():
    q = QualityResult.from_scores(2.0, -1.0, True)
    assert q.brightness_score == 1.0
    assert q.sharpness_score == 0.0
    assert q.overall_score == pytest.approx(0.7)


def test_assess_quality_rejects_invalid_image():
    with pytest.raises(LivenessError) as exc:
        assess_quality(solid_image((32, 32)), has_face=True)
    assert exc.value.kind == ErrorKind.QUALITY_CHECK


def test_checker_uses_face_detector(gray_image):
    detector = FakeFaceDetector(has_face=False)
    q = QualityChecker(detector).check(gray_image)
    assert detector.calls == 1
    assert not q.has_face


def test_checker_wraps_detector_failure(gray_image):
    checker = QualityChecker(FakeFaceDetector(error=RuntimeError("boom")))
    with pytest.raises(LivenessError) as exc:
        checker.check(gray_image)
    assert exc.value.kind == ErrorKind.QUALITY_CHECK
    assert exc.value.cause.kind == ErrorKind.FACE_DETECTION


def test_checker_wraps_face_detection_error(gray_image):
    inner = LivenessError(ErrorKind.FACE_DETECTION, "timed out")
    checker = QualityChecker(FakeFaceDetector(error=inner))
    with pytest.raises(LivenessError) as exc:
        checker.check(gray_image)
    assert exc.value.kind == ErrorKind.QUALITY_CHECK
    assert exc.value.cause is inner


@pytest.mark.parametrize("level", [37, 61, 74, 93, 128])
def test_gray_luma_is_exact_integer(level):
    rgb = np.full((64, 64, 3), level, dtype=np.uint8)
    assert average_brightness(rgb) == float(level)
