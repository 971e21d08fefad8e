from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from .errors import ConstructionError

if TYPE_CHECKING:  # pragma: no cover
    import pandas as pd

    from .tensegrity import Tensegrity

INTERVAL_COLUMNS = [
    "index",
    "alpha",
    "omega",
    "role",
    "is_push",
    "scale",
    "strain",
    "stiffness",
    "linear_density",
    "ideal_length",
    "length",
    "radius",
]


def fabric_output(
    tensegrity: "Tensegrity",
    push_radius: float = 0.05,
    pull_radius: float = 0.01,
    joint_radius: float = 0.1,
) -> dict:
    """Serialize the live fabric to a plain Python ``dict``.

    Joint coordinates are written z-up, swapping the engine's y and z.
    """

    engine = tensegrity.engine
    ideal_lengths = engine.ideal_lengths
    lengths = engine.interval_lengths()
    joint_count = len(tensegrity.joints)
    joints = []
    for joint in tensegrity.joints:
        x, y, z = engine.joint_location(joint.index)
        joints.append(
            {
                "index": joint.index,
                "radius": joint_radius,
                "x": float(x),
                "y": float(z),
                "z": float(y),
                "anchor": bool(engine.fixed[joint.index]),
            }
        )
    intervals = []
    for interval in tensegrity.intervals:
        alpha, omega = interval.alpha.index, interval.omega.index
        if alpha >= joint_count or omega >= joint_count:
            raise ConstructionError(
                f"joint not found {interval.role.value}:{alpha},{omega}:{joint_count}"
            )
        intervals.append(
            {
                "index": interval.index,
                "joints": [alpha, omega],
                "type": "Push" if interval.is_push else "Pull",
                "role": interval.role.value,
                "is_push": interval.is_push,
                "scale": interval.scale,
                "strain": float(engine.strains[interval.index]),
                "stiffness": float(engine.stiffnesses[interval.index]),
                "linear_density": float(engine.linear_densities[interval.index]),
                "ideal_length": float(ideal_lengths[interval.index]),
                "length": float(lengths[interval.index]),
                "radius": push_radius if interval.is_push else pull_radius,
            }
        )
    return {"name": tensegrity.tenscript.name, "joints": joints, "intervals": intervals}


def to_interval_dataframe(output: dict) -> "pd.DataFrame":
    """Tabulate the intervals of a :func:`fabric_output` snapshot."""

    import pandas as pd

    rows = [
        {
            "index": entry["index"],
            "alpha": entry["joints"][0],
            "omega": entry["joints"][1],
            **{key: entry[key] for key in INTERVAL_COLUMNS[3:]},
        }
        for entry in output["intervals"]
    ]
    return pd.DataFrame(rows, columns=INTERVAL_COLUMNS)


def joint_array(output: dict) -> np.ndarray:
    """Joint coordinates of a snapshot as an ``(N, 3)`` array, z-up."""

    return np.array([[j["x"], j["y"], j["z"]] for j in output["joints"]], dtype=float).reshape(-1, 3)


__all__ = ["INTERVAL_COLUMNS", "fabric_output", "to_interval_dataframe", "joint_array"]
