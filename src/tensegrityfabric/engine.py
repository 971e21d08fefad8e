"""Reference physics engine for growing fabrics.

The builder only ever talks to an engine through the small surface below:
registration and removal of joints, intervals and faces, read-only queries
and a handful of commands. :class:`FabricEngine` implements it with a
damped dynamic-relaxation integrator over numpy arrays. Removing an interval
or a face repacks the arrays, so callers must renumber the indices they hold.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from .features import WorldFeature, numeric_features
from .model import Stage

logger = logging.getLogger(__name__)

_INTERVAL_FIELDS = (
    "alphas",
    "omegas",
    "push",
    "face",
    "connector",
    "rest_lengths",
    "target_lengths",
    "countdowns",
    "max_countdowns",
    "stiffnesses",
    "linear_densities",
    "strains",
)

_JOINT_MASS = 0.1


class FabricEngine:
    """Damped dynamic relaxation over joints and tension/compression intervals."""

    def __init__(self, numeric_feature: Optional[Callable[[WorldFeature], float]] = None):
        self.numeric_feature = numeric_feature or numeric_features()
        self.clear()

    def clear(self) -> None:
        self.locations = np.zeros((0, 3), dtype=float)
        self.velocities = np.zeros((0, 3), dtype=float)
        self.fixed = np.zeros(0, dtype=bool)
        self.alphas = np.zeros(0, dtype=int)
        self.omegas = np.zeros(0, dtype=int)
        self.push = np.zeros(0, dtype=bool)
        self.face = np.zeros(0, dtype=bool)
        self.connector = np.zeros(0, dtype=bool)
        self.rest_lengths = np.zeros(0, dtype=float)
        self.target_lengths = np.zeros(0, dtype=float)
        self.countdowns = np.zeros(0, dtype=int)
        self.max_countdowns = np.zeros(0, dtype=int)
        self.stiffnesses = np.zeros(0, dtype=float)
        self.linear_densities = np.zeros(0, dtype=float)
        self.strains = np.zeros(0, dtype=float)
        self.faces = np.zeros((0, 3), dtype=int)
        self.age = 0
        self._stage = Stage.GROWING
        self._pretensing_left = 0

    # registration ---------------------------------------------------------

    @property
    def joint_count(self) -> int:
        return len(self.locations)

    @property
    def interval_count(self) -> int:
        return len(self.alphas)

    @property
    def face_count(self) -> int:
        return len(self.faces)

    def create_joint(self, x: float, y: float, z: float) -> int:
        self.locations = np.vstack([self.locations, [x, y, z]])
        self.velocities = np.vstack([self.velocities, np.zeros(3)])
        self.fixed = np.append(self.fixed, False)
        return self.joint_count - 1

    def create_interval(
        self,
        alpha: int,
        omega: int,
        push: bool,
        face: bool,
        connector: bool,
        ideal_length: float,
        rest_length: float,
        stiffness: float,
        linear_density: float,
        countdown: float,
    ) -> int:
        """Register an interval and return its index.

        The interval starts at ``ideal_length`` and slides to ``rest_length``
        over ``countdown`` ticks.
        """

        ticks = int(round(countdown))
        values = {
            "alphas": alpha,
            "omegas": omega,
            "push": push,
            "face": face,
            "connector": connector,
            "rest_lengths": ideal_length if ticks > 0 else rest_length,
            "target_lengths": rest_length,
            "countdowns": ticks,
            "max_countdowns": ticks,
            "stiffnesses": stiffness,
            "linear_densities": linear_density,
            "strains": 0.0,
        }
        for name in _INTERVAL_FIELDS:
            setattr(self, name, np.append(getattr(self, name), values[name]))
        return self.interval_count - 1

    def remove_interval(self, index: int) -> None:
        if not 0 <= index < self.interval_count:
            raise IndexError(f"no interval {index}")
        for name in _INTERVAL_FIELDS:
            setattr(self, name, np.delete(getattr(self, name), index))

    def create_face(self, joint0: int, joint1: int, joint2: int) -> int:
        self.faces = np.vstack([self.faces, [joint0, joint1, joint2]])
        return self.face_count - 1

    def remove_face(self, index: int) -> None:
        if not 0 <= index < self.face_count:
            raise IndexError(f"no face {index}")
        self.faces = np.delete(self.faces, index, axis=0)

    def set_fixed(self, joint: int, fixed: bool = True) -> None:
        self.fixed[joint] = fixed

    # queries --------------------------------------------------------------

    def joint_location(self, index: int) -> np.ndarray:
        return self.locations[index].copy()

    def set_joint_location(self, index: int, location) -> None:
        self.locations[index] = np.asarray(location, dtype=float)
        self.velocities[index] = 0.0

    def _spans(self) -> np.ndarray:
        return self.locations[self.omegas] - self.locations[self.alphas]

    def interval_lengths(self) -> np.ndarray:
        return np.linalg.norm(self._spans(), axis=1)

    def interval_unit(self, index: int) -> np.ndarray:
        span = self.locations[self.omegas[index]] - self.locations[self.alphas[index]]
        return span / (np.linalg.norm(span) + 1e-12)

    def interval_displacement(self, index: int) -> float:
        return float(self.interval_lengths()[index] - self.ideal_lengths[index])

    @property
    def ideal_lengths(self) -> np.ndarray:
        """Current ideal length of every interval, honouring countdowns."""

        progress = np.ones_like(self.rest_lengths)
        busy = self.max_countdowns > 0
        progress[busy] = 1.0 - self.countdowns[busy] / self.max_countdowns[busy]
        return self.rest_lengths + (self.target_lengths - self.rest_lengths) * progress

    def midpoint(self) -> np.ndarray:
        if self.joint_count == 0:
            return np.zeros(3)
        return self.locations.mean(axis=0)

    # commands -------------------------------------------------------------

    def adopt_lengths(self) -> None:
        """Make every interval's current length its rest length."""

        lengths = self.interval_lengths()
        self.rest_lengths = lengths.copy()
        self.target_lengths = lengths.copy()
        self.countdowns[:] = 0
        self.max_countdowns[:] = 0
        self.strains[:] = 0.0
        self.velocities[:] = 0.0

    def apply_matrix(self, matrix) -> None:
        m = np.asarray(matrix, dtype=float)
        self.locations = self.locations @ m[:3, :3].T + m[:3, 3]
        self.velocities = self.velocities @ m[:3, :3].T

    def set_altitude(self, altitude: float) -> float:
        """Shift vertically so the lowest connected joint sits at ``altitude``."""

        if self.joint_count == 0:
            return 0.0
        connected = np.union1d(self.alphas, self.omegas)
        heights = self.locations[connected, 1] if len(connected) else self.locations[:, 1]
        shift = altitude - float(heights.min())
        self.locations[:, 1] += shift
        return shift

    def multiply_rest_length(self, index: int, factor: float, countdown: int) -> None:
        current = self.ideal_lengths[index]
        self.rest_lengths[index] = current
        self.target_lengths[index] = current * factor
        self.countdowns[index] = countdown
        self.max_countdowns[index] = countdown

    def set_stiffnesses(self, stiffnesses, linear_densities) -> None:
        stiffnesses = np.asarray(stiffnesses, dtype=float)
        linear_densities = np.asarray(linear_densities, dtype=float)
        if stiffnesses.shape != self.stiffnesses.shape:
            raise ValueError("stiffnesses must match the number of intervals")
        self.stiffnesses = stiffnesses.copy()
        self.linear_densities = linear_densities.copy()

    def snapshot(self) -> dict:
        state = {name: getattr(self, name).copy() for name in _INTERVAL_FIELDS}
        state["locations"] = self.locations.copy()
        state["fixed"] = self.fixed.copy()
        state["faces"] = self.faces.copy()
        return state

    def restore(self, state: dict) -> None:
        for name, value in state.items():
            setattr(self, name, value.copy())
        self.velocities = np.zeros_like(self.locations)

    def finish_growing(self) -> Stage:
        logger.debug("growth finished after %d ticks", self.age)
        return Stage.SHAPING

    # physics --------------------------------------------------------------

    def _tick(self, stage: Stage, nuance: float) -> None:
        feature = self.numeric_feature
        dt = feature(WorldFeature.TIME_STEP)
        ideal = self.ideal_lengths
        if stage in (Stage.GROWING, Stage.SHAPING):
            ideal = np.where(self.push, ideal * (1.0 + feature(WorldFeature.SHAPING_PRETENST_FACTOR)), ideal)
        elif stage == Stage.PRETENSING:
            ideal = np.where(self.push, ideal * (1.0 + feature(WorldFeature.PRETENST_FACTOR) * nuance), ideal)
        elif stage == Stage.PRETENST:
            ideal = np.where(self.push, ideal * (1.0 + feature(WorldFeature.PRETENST_FACTOR)), ideal)

        d = self._spans()
        L = np.linalg.norm(d, axis=1) + 1e-12
        u = d / L[:, None]
        strain = (L - ideal) / ideal
        # pushes only push, pulls only pull
        strain[self.push & (strain > 0.0)] = 0.0
        strain[~self.push & (strain < 0.0)] = 0.0
        self.strains = strain
        force = strain * self.stiffnesses
        if stage <= Stage.SLACK:
            force = force * feature(WorldFeature.SHAPING_STIFFNESS_FACTOR)

        F = np.zeros_like(self.locations)
        Fi = u * (force / 2.0)[:, None]
        np.add.at(F, self.alphas, Fi)
        np.add.at(F, self.omegas, -Fi)
        M = np.full(self.joint_count, _JOINT_MASS)
        half_mass = ideal * self.linear_densities / 2.0
        np.add.at(M, self.alphas, half_mass)
        np.add.at(M, self.omegas, half_mass)

        gravity = stage >= Stage.PRETENSING
        if gravity:
            F[:, 1] -= M * feature(WorldFeature.GRAVITY)
        free = ~self.fixed
        drag = feature(WorldFeature.DRAG)
        A = F / M[:, None]
        self.velocities[free] = (1.0 - drag) * self.velocities[free] + dt * A[free]
        self.locations[free] = self.locations[free] + dt * self.velocities[free]
        if gravity:
            below = self.locations[:, 1] < 0.0
            self.locations[below, 1] = 0.0
            self.velocities[below, 1] = np.maximum(self.velocities[below, 1], 0.0)

        busy = self.countdowns > 0
        self.countdowns[busy] -= 1
        done = busy & (self.countdowns == 0)
        self.rest_lengths[done] = self.target_lengths[done]
        self.max_countdowns[done] = 0
        self.age += 1

    def iterate(self, stage: Stage, ticks: Optional[int] = None) -> Stage:
        """Advance the simulation and report the resulting stage.

        Parameters
        ----------
        stage : Stage
            Lifecycle stage the caller is in.
        ticks : int, optional
            Number of ticks; defaults to the ``TICKS_PER_FRAME`` feature.
        """

        if stage == Stage.PRETENSING and self._stage != Stage.PRETENSING:
            self._pretensing_left = int(self.numeric_feature(WorldFeature.PRETENSING_COUNTDOWN))
        self._stage = stage
        if ticks is None:
            ticks = int(self.numeric_feature(WorldFeature.TICKS_PER_FRAME))
        if self.joint_count == 0:
            return stage
        total = max(1, int(self.numeric_feature(WorldFeature.PRETENSING_COUNTDOWN)))
        for _ in range(ticks):
            nuance = 1.0 - self._pretensing_left / total
            self._tick(stage, nuance)
            if stage == Stage.PRETENSING:
                self._pretensing_left -= 1
                if self._pretensing_left <= 0:
                    self._stage = Stage.PRETENST
                    return Stage.PRETENST
        return stage


__all__ = ["FabricEngine"]
