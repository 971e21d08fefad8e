"""Stateless vector helpers shared by the builder and the structure graph."""

from __future__ import annotations

from typing import Callable, Optional, Sequence

import numpy as np

from .features import WorldFeature
from .model import IntervalRole

# hub-to-hub distance at which a pull complex is swapped for a ring connection
CONNECTOR_LENGTH = 0.05

_ROLE_LENGTH_FEATURE = {
    IntervalRole.ROOT_PUSH: WorldFeature.PUSH_LENGTH,
    IntervalRole.PHI_PUSH: WorldFeature.PUSH_LENGTH,
    IntervalRole.RIBBON_PUSH: WorldFeature.PUSH_LENGTH,
    IntervalRole.TWIST: WorldFeature.TRIANGLE_LENGTH,
    IntervalRole.PHI_TRIANGLE: WorldFeature.TRIANGLE_LENGTH,
    IntervalRole.RIBBON_LONG: WorldFeature.TRIANGLE_LENGTH,
    IntervalRole.RING: WorldFeature.RING_LENGTH,
    IntervalRole.RIBBON_SHORT: WorldFeature.RING_LENGTH,
    IntervalRole.RIBBON_HANGER: WorldFeature.RING_LENGTH,
    IntervalRole.CROSS: WorldFeature.CROSS_LENGTH,
    IntervalRole.INTER_TWIST: WorldFeature.CROSS_LENGTH,
    IntervalRole.RADIAL_PULL: WorldFeature.RADIAL_LENGTH,
    IntervalRole.TIP_PUSH: WorldFeature.TIP_PUSH_LENGTH,
    IntervalRole.TIP_INNER: WorldFeature.TIP_PULL_LENGTH,
    IntervalRole.TIP_OUTER: WorldFeature.TIP_PULL_LENGTH,
    IntervalRole.CONNECTOR_PULL: WorldFeature.CONNECTOR_REST_LENGTH,
}

# roles whose scale already encodes an absolute length
_UNIT_LENGTH_ROLES = frozenset(
    {
        IntervalRole.INTER_TIP,
        IntervalRole.FACE_CONNECTOR,
        IntervalRole.FACE_DISTANCER,
        IntervalRole.FACE_ANCHOR,
    }
)


def factor_from_percent(percent: float) -> float:
    return percent / 100.0


def percent_from_factor(factor: float) -> float:
    return factor * 100.0


def percent_or_hundred(percent: Optional[float] = None) -> float:
    return 100.0 if percent is None else float(percent)


def role_default_length(
    role: IntervalRole, numeric_feature: Callable[[WorldFeature], float]
) -> float:
    """Canonical length of a member with ``role`` at 100% scale."""

    if role in _UNIT_LENGTH_ROLES:
        return 1.0
    return numeric_feature(_ROLE_LENGTH_FEATURE[role])


def midpoint(points: Sequence) -> np.ndarray:
    pts = np.asarray(points, dtype=float)
    return pts.mean(axis=0)


def normal(points: Sequence) -> np.ndarray:
    """Unit normal of a polygon, right-handed with respect to point order."""

    pts = np.asarray(points, dtype=float)
    mid = pts.mean(axis=0)
    rel = pts - mid
    total = np.cross(rel, np.roll(rel, -1, axis=0)).sum(axis=0)
    span = np.linalg.norm(total)
    if span < 1e-12:
        return total
    return total / span


def distance(a, b) -> float:
    return float(np.linalg.norm(np.asarray(b, dtype=float) - np.asarray(a, dtype=float)))


def face_to_origin_matrix(points: Sequence) -> np.ndarray:
    """Rigid 4x4 transform seating a polygon on the origin.

    The polygon midpoint moves to the origin, its outward normal to -Y and
    its first corner onto the +X side.
    """

    pts = np.asarray(points, dtype=float)
    mid = pts.mean(axis=0)
    up = -normal(pts)
    x = pts[0] - mid
    x = x - up * np.dot(x, up)
    x = x / np.linalg.norm(x)
    z = np.cross(x, up)
    matrix = np.eye(4)
    matrix[0, :3] = x
    matrix[1, :3] = up
    matrix[2, :3] = z
    matrix[:3, 3] = -matrix[:3, :3] @ mid
    return matrix


def best_ring_offset(alpha_points: Sequence, omega_points: Sequence) -> int:
    """Rotation of ``omega_points`` that best pairs it with ``alpha_points``.

    Returns the offset ``k`` minimising ``sum |alpha[i] - omega[(i + k) % n]|``.
    """

    a = np.asarray(alpha_points, dtype=float)
    b = np.asarray(omega_points, dtype=float)
    costs = [
        np.linalg.norm(a - np.roll(b, -k, axis=0), axis=1).sum() for k in range(len(b))
    ]
    return int(np.argmin(costs))


__all__ = [
    "CONNECTOR_LENGTH",
    "factor_from_percent",
    "percent_from_factor",
    "percent_or_hundred",
    "role_default_length",
    "midpoint",
    "normal",
    "distance",
    "face_to_origin_matrix",
    "best_ring_offset",
]
