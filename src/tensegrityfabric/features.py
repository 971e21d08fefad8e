"""World features: the numeric knobs shared by the builder and the engine."""

from __future__ import annotations

import json
from enum import Enum
from typing import Callable, Dict, Mapping, Optional


class WorldFeature(Enum):
    GRAVITY = "gravity"
    DRAG = "drag"
    PRETENST_FACTOR = "pretenst-factor"
    SHAPING_PRETENST_FACTOR = "shaping-pretenst-factor"
    SHAPING_STIFFNESS_FACTOR = "shaping-stiffness-factor"
    PUSH_OVER_PULL = "push-over-pull"
    TICKS_PER_FRAME = "ticks-per-frame"
    TIME_STEP = "time-step"
    INTERVAL_COUNTDOWN = "interval-countdown"
    PRETENSING_COUNTDOWN = "pretensing-countdown"
    GROUND_THRESHOLD = "ground-threshold"
    PUSH_LENGTH = "push-length"
    TRIANGLE_LENGTH = "triangle-length"
    RING_LENGTH = "ring-length"
    CROSS_LENGTH = "cross-length"
    RADIAL_LENGTH = "radial-length"
    TIP_PUSH_LENGTH = "tip-push-length"
    TIP_PULL_LENGTH = "tip-pull-length"
    CONNECTOR_REST_LENGTH = "connector-rest-length"


FEATURE_DEFAULTS: Dict[WorldFeature, float] = {
    WorldFeature.GRAVITY: 0.0001,
    WorldFeature.DRAG: 0.02,
    WorldFeature.PRETENST_FACTOR: 0.03,
    WorldFeature.SHAPING_PRETENST_FACTOR: 0.0,
    WorldFeature.SHAPING_STIFFNESS_FACTOR: 1.0,
    WorldFeature.PUSH_OVER_PULL: 1.0,
    WorldFeature.TICKS_PER_FRAME: 50,
    WorldFeature.TIME_STEP: 0.1,
    WorldFeature.INTERVAL_COUNTDOWN: 100.0,
    WorldFeature.PRETENSING_COUNTDOWN: 1000,
    WorldFeature.GROUND_THRESHOLD: 0.1,
    WorldFeature.PUSH_LENGTH: 2 * 1.618,
    WorldFeature.TRIANGLE_LENGTH: 2.123,
    WorldFeature.RING_LENGTH: 1.440,
    WorldFeature.CROSS_LENGTH: 2.123,
    WorldFeature.RADIAL_LENGTH: 1.226,
    WorldFeature.TIP_PUSH_LENGTH: 1.0,
    WorldFeature.TIP_PULL_LENGTH: 1.2,
    WorldFeature.CONNECTOR_REST_LENGTH: 0.01,
}


def _feature(key) -> WorldFeature:
    if isinstance(key, WorldFeature):
        return key
    try:
        return WorldFeature(key)
    except ValueError:
        raise ValueError(f"unknown world feature: {key}") from None


def numeric_features(
    overrides: Optional[Mapping] = None,
) -> Callable[[WorldFeature], float]:
    """Return a ``numeric_feature`` lookup with ``overrides`` applied.

    Parameters
    ----------
    overrides : mapping, optional
        Feature values keyed by :class:`WorldFeature` or its string value.
        Anything not overridden falls back to :data:`FEATURE_DEFAULTS`.
    """

    values = dict(FEATURE_DEFAULTS)
    for key, value in (overrides or {}).items():
        values[_feature(key)] = float(value)

    def numeric_feature(feature: WorldFeature) -> float:
        return values[feature]

    return numeric_feature


def features_to_json(overrides: Mapping) -> str:
    """Serialize feature overrides to a JSON string."""
    return json.dumps({_feature(k).value: float(v) for k, v in overrides.items()})


def features_from_json(data: str) -> Dict[WorldFeature, float]:
    """Deserialize *data* into feature overrides."""
    raw = json.loads(data)
    return {_feature(k): float(v) for k, v in raw.items()}


__all__ = [
    "WorldFeature",
    "FEATURE_DEFAULTS",
    "numeric_features",
    "features_to_json",
    "features_from_json",
]
