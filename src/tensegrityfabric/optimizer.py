"""Stiffness redistribution from observed strain."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Tuple

import numpy as np

from .features import WorldFeature
from .geometry import factor_from_percent
from .model import RIBBON_ROLES

if TYPE_CHECKING:  # pragma: no cover
    import pandas as pd

    from .tensegrity import Tensegrity


def scale_to_initial_stiffness(scale: float) -> float:
    """Stiffness of a freshly created member at ``scale`` percent."""
    factor = factor_from_percent(scale)
    return factor * factor


def stiffness_to_linear_density(stiffness: float) -> float:
    return math.sqrt(stiffness)


def strain_frame(tensegrity: "Tensegrity") -> "pd.DataFrame":
    """Tabulate live strain and stiffness per interval.

    Returns
    -------
    pandas.DataFrame
        One row per interval in index order with ``index``, ``role``,
        ``is_push``, ``strain``, ``stiffness`` and ``included`` columns.
        Ribbon members and members touching the ground zone are marked
        ``included=False`` and take no part in redistribution.
    """

    import pandas as pd

    engine = tensegrity.engine
    threshold = tensegrity.numeric_feature(WorldFeature.GROUND_THRESHOLD)
    heights = engine.locations[:, 1]
    rows = []
    for interval in tensegrity.intervals:
        near_ground = (
            heights[interval.alpha.index] < threshold or heights[interval.omega.index] < threshold
        )
        rows.append(
            {
                "index": interval.index,
                "role": interval.role.value,
                "is_push": interval.is_push,
                "strain": float(engine.strains[interval.index]),
                "stiffness": float(engine.stiffnesses[interval.index]),
                "included": interval.role not in RIBBON_ROLES and not near_ground,
            }
        )
    columns = ["index", "role", "is_push", "strain", "stiffness", "included"]
    return pd.DataFrame(rows, columns=columns)


def adjusted_stiffness(tensegrity: "Tensegrity") -> Tuple[np.ndarray, np.ndarray]:
    """Scale every included member's stiffness by its strain over the average.

    Push strains are weighted by the ``PUSH_OVER_PULL`` feature so that
    pushes and pulls share one average absolute strain. Excluded members
    keep their stiffness.

    Returns
    -------
    tuple of ndarray
        ``(stiffnesses, linear_densities)`` in interval index order.
    """

    frame = strain_frame(tensegrity)
    existing = tensegrity.engine.stiffnesses.copy()
    if frame.empty:
        return existing, np.sqrt(existing)
    push_over_pull = tensegrity.numeric_feature(WorldFeature.PUSH_OVER_PULL)
    included = frame[frame["included"]]
    pushes = included[included["is_push"]]["strain"]
    pulls = included[~included["is_push"]]["strain"]
    average_push = pushes.mean() if len(pushes) else 0.0
    average_pull = pulls.mean() if len(pulls) else 0.0
    average_absolute = (-push_over_pull * average_push + average_pull) / 2
    if average_absolute == 0.0:
        return existing, np.sqrt(existing)
    absolute = frame["strain"] * np.where(frame["is_push"], -push_over_pull, 1.0)
    changes = np.where(frame["included"], absolute / average_absolute, 1.0)
    stiffnesses = existing.copy()
    stiffnesses[frame["index"].to_numpy()] *= changes
    return stiffnesses, np.sqrt(stiffnesses)


__all__ = [
    "scale_to_initial_stiffness",
    "stiffness_to_linear_density",
    "strain_frame",
    "adjusted_stiffness",
]
