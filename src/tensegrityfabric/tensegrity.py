"""The structure graph: joints, intervals and faces of one growing fabric."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, List, Optional, Sequence

import numpy as np

from .builder import TensegrityBuilder
from .engine import FabricEngine
from .errors import ConstructionError, PreconditionError
from .export import fabric_output
from .features import WorldFeature
from .geometry import (
    distance,
    factor_from_percent,
    midpoint,
    percent_from_factor,
    percent_or_hundred,
    role_default_length,
)
from .life import Life, LifeTransition
from .model import (
    Face,
    FaceAnchor,
    Interval,
    IntervalRole,
    Joint,
    PullComplex,
    Spin,
    Stage,
    is_connector_role,
    is_face_role,
    is_push_role,
)
from .optimizer import scale_to_initial_stiffness, stiffness_to_linear_density
from .tenscript import Bud, Tenscript, execute, face_strategies

logger = logging.getLogger(__name__)


class Tensegrity:
    """Owns the joints, intervals and faces of a fabric.

    Every element is mirrored in ``engine``. Interval and face indices are
    positions in the engine's arrays, so removing one renumbers every index
    above it.
    """

    def __init__(
        self,
        location,
        scale: float,
        numeric_feature: Callable[[WorldFeature], float],
        engine: FabricEngine,
        tenscript: Tenscript,
    ):
        self.location = np.asarray(location, dtype=float)
        self.scale = scale
        self.numeric_feature = numeric_feature
        self.engine = engine
        self.tenscript = tenscript
        self.joints: List[Joint] = []
        self.intervals: List[Interval] = []
        self.faces: List[Face] = []
        self.pull_complexes: List[PullComplex] = []
        self.face_anchors: List[FaceAnchor] = []
        self.pushes_per_twist = tenscript.pushes_per_twist
        self.slack_snapshot: Optional[dict] = None
        self._listeners: List[Callable[[Life], None]] = []
        self._transition_queue: deque = deque()
        self.engine.clear()
        self._life = Life(self, Stage.GROWING)
        self.buds: Optional[List[Bud]] = [
            self.builder().create_bud(tenscript, self.location, scale)
        ]

    def builder(self) -> TensegrityBuilder:
        return TensegrityBuilder(self)

    # life -----------------------------------------------------------------

    @property
    def life(self) -> Life:
        return self._life

    def on_life(self, listener: Callable[[Life], None]) -> None:
        """Call ``listener`` now and whenever the life changes."""
        self._listeners.append(listener)
        listener(self._life)

    def request_transition(
        self, stage: Stage, adopt_lengths: bool = False, strain_to_stiffness: bool = False
    ) -> None:
        """Queue a lifecycle transition for the next :meth:`iterate`."""
        if not isinstance(stage, Stage):
            raise PreconditionError(f"not a stage: {stage!r}")
        self._transition_queue.append(LifeTransition(stage, adopt_lengths, strain_to_stiffness))

    def life_transition(self, tx: LifeTransition) -> None:
        life = self._life.execute_transition(tx)
        if life is self._life:
            return
        self._life = life
        for listener in self._listeners:
            listener(life)

    # joints and intervals -------------------------------------------------

    def create_joint(self, location) -> Joint:
        x, y, z = (float(v) for v in location)
        joint = Joint(self.engine.create_joint(x, y, z))
        self.joints.append(joint)
        return joint

    def joint_location(self, joint: Joint) -> np.ndarray:
        return self.engine.joint_location(joint.index)

    def joint_distance(self, a: Joint, b: Joint) -> float:
        return distance(self.joint_location(a), self.joint_location(b))

    def interval_length(self, interval: Interval) -> float:
        return self.joint_distance(interval.alpha, interval.omega)

    def create_interval(
        self, alpha: Joint, omega: Joint, role: IntervalRole, scale: float
    ) -> Interval:
        """Create a member whose rest length is the role length times ``scale``."""

        current_length = self.joint_distance(alpha, omega)
        rest_length = factor_from_percent(scale) * role_default_length(role, self.numeric_feature)
        countdown = self.numeric_feature(WorldFeature.INTERVAL_COUNTDOWN) * abs(
            current_length - rest_length
        )
        stiffness = scale_to_initial_stiffness(scale)
        linear_density = stiffness_to_linear_density(stiffness)
        index = self.engine.create_interval(
            alpha.index,
            omega.index,
            is_push_role(role),
            is_face_role(role),
            is_connector_role(role),
            current_length,
            rest_length,
            stiffness,
            linear_density,
            countdown,
        )
        interval = Interval(index, alpha, omega, role, scale)
        self.intervals.append(interval)
        return interval

    def create_connector(
        self,
        alpha: Joint,
        omega: Joint,
        role: IntervalRole,
        rest_length: float,
        stiffness: float,
        linear_density: float,
    ) -> Interval:
        """Create a member that shrinks from its current length to ``rest_length``."""

        ideal_length = self.joint_distance(alpha, omega)
        countdown = self.numeric_feature(WorldFeature.INTERVAL_COUNTDOWN) * abs(
            rest_length - ideal_length
        )
        index = self.engine.create_interval(
            alpha.index,
            omega.index,
            False,
            is_face_role(role),
            is_connector_role(role),
            ideal_length,
            rest_length,
            stiffness,
            linear_density,
            countdown,
        )
        interval = Interval(index, alpha, omega, role, percent_or_hundred())
        self.intervals.append(interval)
        return interval

    def change_interval_scale(self, interval: Interval, factor: float) -> None:
        interval.scale = percent_from_factor(factor_from_percent(interval.scale) * factor)
        self.engine.multiply_rest_length(interval.index, factor, 100)

    def remove_interval(self, interval: Interval) -> None:
        """Remove ``interval`` and renumber every interval above it."""

        if interval.removed:
            return
        interval.removed = True
        self.engine.remove_interval(interval.index)
        self.intervals = [existing for existing in self.intervals if existing is not interval]
        for existing in self.intervals:
            if existing.index > interval.index:
                existing.index -= 1

    def find_interval(self, joint1: Joint, joint2: Joint) -> Optional[Interval]:
        for interval in self.intervals:
            if interval.connects(joint1, joint2):
                return interval
        return None

    def across_push(self, joint: Joint) -> Joint:
        """The joint at the other end of ``joint``'s push."""

        for interval in self.intervals:
            if interval.is_push and joint.index in (interval.alpha.index, interval.omega.index):
                return interval.other_joint(joint)
        raise ConstructionError(f"joint {joint.index} has no push")

    # faces ----------------------------------------------------------------

    def _recent_pull(self, a: Joint, b: Joint) -> Interval:
        # newest first: rebuilt faces coexist briefly with stale duplicates
        for interval in reversed(self.intervals):
            if interval.connects(a, b):
                return interval
        raise ConstructionError(f"could not find pull between joints {a.index} and {b.index}")

    def create_face(
        self,
        ends: Sequence[Joint],
        omni: bool,
        spin: Spin,
        scale: float,
        known_pulls: Optional[Sequence[Interval]] = None,
    ) -> Face:
        ends = list(ends)
        n = len(ends)
        if n < 3:
            raise ConstructionError(f"a face needs at least three ends, got {n}")
        if known_pulls is None:
            pulls = [self._recent_pull(ends[i], ends[(i + 1) % n]) for i in range(n)]
        else:
            pulls = list(known_pulls)
        f0, f1, f2 = ends[0], ends[n // 3], ends[(2 * n) // 3]
        index = self.engine.create_face(f0.index, f1.index, f2.index)
        face = Face(index, omni, spin, scale, ends, pulls)
        self.faces.append(face)
        return face

    def remove_face(self, face: Face, remove_pulls: bool = True) -> None:
        """Remove ``face`` and renumber every face above it."""

        if remove_pulls:
            for pull in face.pulls:
                self.remove_interval(pull)
            face.pulls = []
        self.engine.remove_face(face.index)
        self.faces = [existing for existing in self.faces if existing is not face]
        for existing in self.faces:
            if existing.index > face.index:
                existing.index -= 1

    def location_from_face(self, face: Face) -> np.ndarray:
        return midpoint([self.joint_location(end) for end in face.ends])

    def location_from_faces(self, faces: Sequence[Face]) -> np.ndarray:
        return midpoint([self.location_from_face(face) for face in faces])

    # scaffolding ----------------------------------------------------------

    def create_radial_pull(
        self, alpha: Face, omega: Face, pull_scale: Optional[float] = None
    ) -> PullComplex:
        """Hang a hub in each face and tie the hubs together.

        Without ``pull_scale`` the hub member is a connector that draws the
        faces into contact; with it the hubs are held at ``pull_scale`` of
        their current distance.
        """

        stiffness = scale_to_initial_stiffness(percent_or_hundred())
        linear_density = stiffness_to_linear_density(stiffness)
        alpha_hub = self.create_joint(self.location_from_face(alpha))
        omega_hub = self.create_joint(self.location_from_face(omega))
        if pull_scale is None:
            role = IntervalRole.CONNECTOR_PULL
            rest_length = role_default_length(role, self.numeric_feature)
        else:
            role = IntervalRole.FACE_DISTANCER
            rest_length = factor_from_percent(pull_scale) * self.joint_distance(alpha_hub, omega_hub)
        connector = self.create_connector(
            alpha_hub, omega_hub, role, rest_length, stiffness, linear_density
        )
        alpha_spokes = [
            self.create_interval(alpha_hub, end, IntervalRole.RADIAL_PULL, alpha.scale)
            for end in alpha.ends
        ]
        omega_spokes = [
            self.create_interval(omega_hub, end, IntervalRole.RADIAL_PULL, omega.scale)
            for end in omega.ends
        ]
        complex_ = PullComplex(connector, alpha, omega, alpha_spokes, omega_spokes)
        self.pull_complexes.append(complex_)
        logger.debug(
            "pull complex %s between faces %d and %d", role.value, alpha.index, omega.index
        )
        return complex_

    def remove_pull_complex(self, complex_: PullComplex) -> None:
        for interval in complex_.intervals:
            self.remove_interval(interval)
        self.pull_complexes = [c for c in self.pull_complexes if c is not complex_]

    def create_face_anchor(self, face: Face, scale: Optional[float] = None) -> FaceAnchor:
        """Pin a ground joint below ``face`` and pull the face's ends to it."""

        mid = self.location_from_face(face)
        joint = self.create_joint((mid[0], 0.0, mid[2]))
        self.engine.set_fixed(joint.index)
        pulls = []
        for end in face.ends:
            reach = self.joint_distance(end, joint)
            anchor_scale = percent_from_factor(factor_from_percent(percent_or_hundred(scale)) * reach)
            pulls.append(self.create_interval(end, joint, IntervalRole.FACE_ANCHOR, anchor_scale))
        anchor = FaceAnchor(face, joint, pulls)
        self.face_anchors.append(anchor)
        return anchor

    def remove_face_anchors(self) -> None:
        for anchor in self.face_anchors:
            for pull in anchor.pulls:
                self.remove_interval(pull)
            self.engine.set_fixed(anchor.joint.index, False)
        self.face_anchors = []

    # ticking --------------------------------------------------------------

    def iterate(self) -> Stage:
        """Advance one frame: physics plus at most one unit of structural work."""

        if self._transition_queue:
            self.life_transition(self._transition_queue.popleft())
        stage = self.engine.iterate(self._life.stage)
        if self.buds is not None:
            if self.buds:
                self.buds = execute(self.buds)
                return Stage.GROWING
            self.buds = None
            for strategy in face_strategies(self.faces, self.tenscript.marks, self.builder()):
                strategy.execute()
            if stage == Stage.GROWING:
                stage = self.engine.finish_growing()
        if stage != self._life.stage:
            self.life_transition(LifeTransition(stage))
        if self.pull_complexes:
            self.pull_complexes = self.builder().check_connectors(
                self.pull_complexes, self.remove_interval
            )
        return stage

    def fabric_output(
        self, push_radius: float = 0.05, pull_radius: float = 0.01, joint_radius: float = 0.1
    ) -> dict:
        return fabric_output(self, push_radius, pull_radius, joint_radius)


__all__ = ["Tensegrity"]
