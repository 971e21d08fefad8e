import numpy as np
import pytest

from tensegrityfabric.features import WorldFeature, numeric_features
from tensegrityfabric.geometry import (
    best_ring_offset,
    face_to_origin_matrix,
    factor_from_percent,
    midpoint,
    normal,
    percent_from_factor,
    percent_or_hundred,
    role_default_length,
)
from tensegrityfabric.model import IntervalRole


def _ring(n=3, y=0.0):
    return [
        np.array([np.cos(2 * np.pi * k / n), y, np.sin(2 * np.pi * k / n)]) for k in range(n)
    ]


def test_percent_factor_conversions():
    assert factor_from_percent(75) == 0.75
    assert percent_from_factor(0.75) == 75.0
    assert percent_or_hundred() == 100.0
    assert percent_or_hundred(40) == 40.0


def test_role_default_length():
    numeric_feature = numeric_features({WorldFeature.RING_LENGTH: 2.0})
    assert role_default_length(IntervalRole.RING, numeric_feature) == 2.0
    assert role_default_length(IntervalRole.ROOT_PUSH, numeric_feature) == pytest.approx(3.236)
    assert role_default_length(IntervalRole.FACE_ANCHOR, numeric_feature) == 1.0
    for role in IntervalRole:
        assert role_default_length(role, numeric_feature) > 0


def test_normal_follows_winding():
    ring = _ring()
    assert np.allclose(normal(ring), [0.0, -1.0, 0.0])
    assert np.allclose(normal(ring[::-1]), [0.0, 1.0, 0.0])
    assert np.allclose(midpoint(ring), 0.0)


def test_face_to_origin_matrix_is_rigid():
    rotation = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
    points = [rotation @ p + [4.0, 5.0, 6.0] for p in _ring()]
    matrix = face_to_origin_matrix(points)
    assert np.allclose(matrix[:3, :3] @ matrix[:3, :3].T, np.eye(3))
    assert np.linalg.det(matrix[:3, :3]) == pytest.approx(1.0)
    moved = [matrix[:3, :3] @ p + matrix[:3, 3] for p in points]
    assert np.allclose(midpoint(moved), 0.0)
    assert np.allclose(normal(moved), [0.0, -1.0, 0.0])
    assert moved[0][0] > 0


def test_best_ring_offset():
    ring = _ring(4)
    shifted = ring[1:] + ring[:1]
    assert best_ring_offset(ring, ring) == 0
    assert best_ring_offset(ring, shifted) == 3
