"""Twist construction and face connection.

A twist is a ring of pushes held by two end polygons and a set of diagonal
pulls whose offset fixes the handedness. Twists are stacked by connecting an
existing face to the base face of a new twist with a ring of pulls, and faces
far apart are drawn together by temporary pull complexes until they are close
enough to be connected the same way.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Callable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .errors import ConstructionError, PreconditionError
from .features import WorldFeature
from .geometry import (
    CONNECTOR_LENGTH,
    best_ring_offset,
    distance,
    face_to_origin_matrix,
    factor_from_percent,
    midpoint,
    normal,
    percent_from_factor,
    percent_or_hundred,
    role_default_length,
)
from .model import (
    Face,
    FaceAction,
    Interval,
    IntervalRole,
    Joint,
    PullComplex,
    Spin,
    Tip,
    Twist,
    is_omni_spin,
    opposite_spin,
)
from .tenscript import Bud

if TYPE_CHECKING:  # pragma: no cover
    from .tenscript import Tenscript
    from .tensegrity import Tensegrity

logger = logging.getLogger(__name__)

PointPair = Tuple[np.ndarray, np.ndarray]

# hub separation kept by a distance complex when no percentage is given
DEFAULT_DISTANCE_SCALE = 75.0


class ConnectRoles(NamedTuple):
    ring: IntervalRole
    up: IntervalRole
    down: IntervalRole


def connect_roles(omni_a: bool, omni_b: bool) -> ConnectRoles:
    """Roles of the members joining a face with omni flag ``omni_a`` to ``omni_b``."""

    if not omni_a and not omni_b:
        return ConnectRoles(IntervalRole.RING, IntervalRole.INTER_TWIST, IntervalRole.INTER_TWIST)
    if omni_a and not omni_b:
        return ConnectRoles(IntervalRole.RING, IntervalRole.CROSS, IntervalRole.INTER_TWIST)
    if not omni_a and omni_b:
        return ConnectRoles(IntervalRole.RING, IntervalRole.INTER_TWIST, IntervalRole.CROSS)
    return ConnectRoles(
        IntervalRole.PHI_TRIANGLE, IntervalRole.PHI_TRIANGLE, IntervalRole.PHI_TRIANGLE
    )


def twist_point_pairs(
    base: Sequence, spin: Spin, scale: float, numeric_feature: Callable[[WorldFeature], float]
) -> List[PointPair]:
    """Push end points for a twist standing on the polygon ``base``.

    Alphas sit between consecutive base corners; omegas are lifted against
    the base normal and shifted one corner along ``spin``.
    """

    base = np.asarray(base, dtype=float)
    n = len(base)
    initial_length = (
        role_default_length(IntervalRole.PHI_TRIANGLE, numeric_feature)
        * factor_from_percent(scale)
        / math.sqrt(3)
    )
    tiny_radius = initial_length * n / 3 / math.sqrt(3)
    mid = midpoint(base)
    up = normal(base) * -initial_length
    pairs = []
    for index in range(n):
        a = base[(index + n - 1) % n] - mid
        b = base[index] - mid
        c = base[(index + 1) % n] - mid
        d = base[(index + 2) % n] - mid
        alpha = mid + (b + c) / 2 * tiny_radius
        if spin == Spin.LEFT:
            omega = mid + up + (c + d) / 2 * tiny_radius
        else:
            omega = mid + up + (b + a) / 2 * tiny_radius
        pairs.append((alpha, omega))
    return pairs


def first_twist_point_pairs(
    location,
    pushes_per_twist: int,
    spin: Spin,
    scale: float,
    numeric_feature: Callable[[WorldFeature], float],
) -> List[PointPair]:
    """Point pairs for a free-standing twist on a unit ring in the XZ plane."""

    location = np.asarray(location, dtype=float)
    base = []
    for index in range(pushes_per_twist):
        angle = index * math.pi * 2 / pushes_per_twist
        base.append(np.array([math.cos(angle), 0.0, math.sin(angle)]) + location)
    return twist_point_pairs(base, spin, scale, numeric_feature)


def face_twist_point_pairs(
    tensegrity: "Tensegrity", face: Face, scale: float
) -> List[PointPair]:
    base = [tensegrity.joint_location(end) for end in reversed(face.ends)]
    return twist_point_pairs(base, opposite_spin(face.spin), scale, tensegrity.numeric_feature)


def tip_point_pair(tensegrity: "Tensegrity", face: Face) -> PointPair:
    base = [tensegrity.joint_location(end) for end in reversed(face.ends)]
    mid = midpoint(base)
    out = normal(base)
    tip_length = factor_from_percent(face.scale) * role_default_length(
        IntervalRole.TIP_PUSH, tensegrity.numeric_feature
    )
    return mid + out * 0.1 * tip_length, mid - out * 0.1 * tip_length


class TensegrityBuilder:
    """Stateless construction algorithms over one :class:`Tensegrity`."""

    def __init__(self, tensegrity: "Tensegrity"):
        self.tensegrity = tensegrity

    def create_bud(self, tenscript: "Tenscript", location=None, scale: Optional[float] = None) -> Bud:
        """Seed a fabric with its first twist and return the bud growing from it."""

        at = np.zeros(3) if location is None else np.asarray(location, dtype=float)
        twist = self.create_twist_at(at, tenscript.spin, percent_or_hundred(scale))
        return Bud(self, tenscript.tree, twist, twist.faces[-1], tenscript.marks)

    # twists ---------------------------------------------------------------

    def create_twist_at(self, location, spin: Spin, scale: float) -> Twist:
        """Build a free-standing twist centred on ``location``."""

        numeric_feature = self.tensegrity.numeric_feature
        pushes = self.tensegrity.pushes_per_twist
        if is_omni_spin(spin):
            bottom_spin = Spin.LEFT if spin == Spin.LEFT_RIGHT else Spin.RIGHT
            bottom = self._create_twist(
                first_twist_point_pairs(location, pushes, bottom_spin, scale, numeric_feature),
                scale,
                bottom_spin,
                IntervalRole.PHI_PUSH,
                IntervalRole.PHI_TRIANGLE,
            )
            bottom_top = bottom.face("A")
            top = self._create_twist(
                face_twist_point_pairs(self.tensegrity, bottom_top, scale),
                scale,
                opposite_spin(bottom_top.spin),
                IntervalRole.PHI_PUSH,
                IntervalRole.PHI_TRIANGLE,
            )
            return self._create_omni_twist(bottom, top)
        return self._create_twist(
            first_twist_point_pairs(location, pushes, spin, scale, numeric_feature),
            scale,
            spin,
            IntervalRole.ROOT_PUSH,
            IntervalRole.TWIST,
        )

    def create_twist_on(self, base_face: Face, twist_scale: float, omni: bool) -> Twist:
        """Grow a twist on ``base_face`` and connect it, consuming the face.

        ``twist_scale`` is relative to the base face's own scale.
        """

        if not base_face.can_grow:
            raise PreconditionError(f"face {base_face.index} cannot grow")
        scale = percent_from_factor(
            factor_from_percent(twist_scale) * factor_from_percent(base_face.scale)
        )
        if omni:
            bottom = self._create_twist(
                face_twist_point_pairs(self.tensegrity, base_face, scale),
                scale,
                opposite_spin(base_face.spin),
                IntervalRole.PHI_PUSH,
                IntervalRole.PHI_TRIANGLE,
            )
            bottom_top = bottom.face("A")
            top = self._create_twist(
                face_twist_point_pairs(self.tensegrity, bottom_top, scale),
                scale,
                opposite_spin(bottom_top.spin),
                IntervalRole.PHI_PUSH,
                IntervalRole.PHI_TRIANGLE,
            )
            twist = self._create_omni_twist(bottom, top)
            self.connect(base_face, twist.face("a"), connect_roles(base_face.omni, True))
            return twist
        twist = self._create_twist(
            face_twist_point_pairs(self.tensegrity, base_face, scale),
            scale,
            opposite_spin(base_face.spin),
            IntervalRole.ROOT_PUSH,
            IntervalRole.TWIST,
        )
        self.connect(base_face, twist.face("a"), connect_roles(base_face.omni, False))
        return twist

    def _create_twist(
        self,
        points: Sequence[PointPair],
        scale: float,
        spin: Spin,
        push_role: IntervalRole,
        pull_role: IntervalRole,
    ) -> Twist:
        tensegrity = self.tensegrity
        twist = Twist(scale)
        ends = [(tensegrity.create_joint(alpha), tensegrity.create_joint(omega)) for alpha, omega in points]
        for alpha, omega in ends:
            twist.pushes.append(tensegrity.create_interval(alpha, omega, push_role, scale))
        n = len(ends)
        alpha_ends = [alpha for alpha, _ in ends]
        omega_ends = [omega for _, omega in reversed(ends)]
        for index, alpha in enumerate(alpha_ends):
            twist.pulls.append(
                tensegrity.create_interval(alpha, alpha_ends[(index + 1) % n], pull_role, scale)
            )
        twist.faces.append(tensegrity.create_face(alpha_ends, False, spin, scale))
        for index, omega in enumerate(omega_ends):
            twist.pulls.append(
                tensegrity.create_interval(omega, omega_ends[(index + 1) % n], pull_role, scale)
            )
        twist.faces.append(tensegrity.create_face(omega_ends, False, spin, scale))
        offset = n - 1 if spin == Spin.LEFT else 1
        for index, (alpha, _) in enumerate(ends):
            omega = ends[(index + offset) % n][1]
            twist.pulls.append(tensegrity.create_interval(alpha, omega, pull_role, scale))
        logger.debug("twist of %d pushes spin=%s scale=%.1f", n, spin.value, scale)
        return twist

    def _create_omni_twist(self, bottom: Twist, top: Twist) -> Twist:
        """Fuse two stacked twists into one with ``2 + 2n`` faces."""

        top_face = top.faces[1]
        bottom_face = bottom.faces[0]
        boundary = {end.index for end in top_face.ends} | {end.index for end in bottom_face.ends}
        connect_pulls = self.connect(bottom.faces[1], top.faces[0], connect_roles(True, True))
        pushes = [*bottom.pushes, *top.pushes]
        pulls = [
            *(pull for pull in bottom.pulls if not pull.removed),
            *(pull for pull in top.pulls if not pull.removed),
            *connect_pulls,
        ]
        scale = bottom.scale

        def create_face_touching(joint: Joint, spin: Spin) -> Face:
            incident = [
                pull for pull in pulls if joint.index in (pull.alpha.index, pull.omega.index)
            ]
            ends = [
                pull.other_joint(joint)
                for pull in incident
                if pull.other_joint(joint).index not in boundary
            ]
            if len(ends) != 2:
                raise ConstructionError(
                    f"joint {joint.index} has {len(ends)} pulls leaving the end faces"
                )
            if not any(pull.connects(ends[0], ends[1]) for pull in pulls):
                raise ConstructionError(
                    f"no pull between joints {ends[0].index} and {ends[1].index}"
                )
            ends.append(joint)
            if spin == Spin.LEFT:
                ends.reverse()
            return self.tensegrity.create_face(ends, False, spin, scale)

        top_touching = [create_face_touching(end, opposite_spin(top_face.spin)) for end in top_face.ends]
        bottom_touching = [
            create_face_touching(end, opposite_spin(bottom_face.spin)) for end in bottom_face.ends
        ]
        bottom_face.omni = top_face.omni = True
        faces = [bottom_face, *bottom_touching, *top_touching, top_face]
        return Twist(scale, faces, pushes, pulls)

    # connection -----------------------------------------------------------

    def connect(self, face_a: Face, face_b: Face, roles: ConnectRoles) -> List[Interval]:
        """Tie two faces of equal size together with a ring of pulls.

        Both faces are removed afterwards. Returns the new pulls.
        """

        if len(face_a.ends) != len(face_b.ends):
            raise ConstructionError(
                f"cannot connect a {len(face_a.ends)}-gon to a {len(face_b.ends)}-gon"
            )
        tensegrity = self.tensegrity
        b = list(reversed(face_a.ends))
        a = [tensegrity.across_push(joint) for joint in b]
        c = list(face_b.ends)
        d = [tensegrity.across_push(joint) for joint in c]
        n = len(b)
        scale = percent_from_factor(
            (factor_from_percent(face_a.scale) + factor_from_percent(face_b.scale)) / 2
        )
        pulls = []
        for index in range(n):
            pulls.append(tensegrity.create_interval(b[index], c[index], roles.ring, scale))
            pulls.append(tensegrity.create_interval(c[index], b[(index + 1) % n], roles.ring, scale))
        for index in range(n):
            a0, a1 = a[index], a[(index + 1) % n]
            b0, b1 = b[index], b[(index + 1) % n]
            c0, d0 = c[index], d[index]
            down = a1 if face_a.spin == Spin.LEFT else a0
            pulls.append(tensegrity.create_interval(c0, down, roles.down, scale))
            up = b1 if face_b.spin == Spin.LEFT else b0
            pulls.append(tensegrity.create_interval(up, d0, roles.up, scale))
        if roles.ring == IntervalRole.RING:
            for index in range(n):
                a0, a1 = a[index], a[(index + 1) % n]
                b0, b1 = b[index], b[(index + 1) % n]
                c0, c1, c_prev = c[index], c[(index + 1) % n], c[(index + n - 1) % n]
                d0 = d[index]
                if face_a.spin == Spin.LEFT:
                    tensegrity.create_face([c0, a1, b0], False, opposite_spin(face_a.spin), scale)
                else:
                    tensegrity.create_face([c0, b1, a0], False, opposite_spin(face_a.spin), scale)
                if face_b.spin == Spin.LEFT:
                    tensegrity.create_face([b1, d0, c1], False, opposite_spin(face_b.spin), scale)
                else:
                    tensegrity.create_face([b0, c_prev, d0], False, opposite_spin(face_b.spin), scale)
        tensegrity.remove_face(face_b)
        tensegrity.remove_face(face_a)
        return pulls

    def rotate_for_best_ring(self, alpha: Face, omega: Face) -> None:
        """Reorder ``omega.ends`` so each corner faces its nearest partner on ``alpha``."""

        tensegrity = self.tensegrity
        alpha_points = [tensegrity.joint_location(end) for end in reversed(alpha.ends)]
        omega_points = [tensegrity.joint_location(end) for end in omega.ends]
        offset = best_ring_offset(alpha_points, omega_points)
        if offset:
            omega.ends = omega.ends[offset:] + omega.ends[:offset]

    # face actions ---------------------------------------------------------

    def create_radial_pulls(
        self, faces: Sequence[Face], action: FaceAction, action_scale: Optional[float] = None
    ) -> List[PullComplex]:
        """Scaffold the faces of one mark with pull complexes.

        Parameters
        ----------
        faces : sequence of Face
            Faces sharing a mark.
        action : FaceAction
            ``DISTANCE`` holds every pair of faces apart at ``action_scale``
            percent of their current distance. ``JOIN`` draws the faces
            together; two faces of equal spin or three faces meet on a new
            omni twist in their midst.
        action_scale : float, optional
            Percentage for ``DISTANCE``, 75 when omitted.
        """

        tensegrity = self.tensegrity
        if action == FaceAction.DISTANCE:
            pull_scale = DEFAULT_DISTANCE_SCALE if action_scale is None else action_scale
            return [
                tensegrity.create_radial_pull(face_a, face_b, pull_scale)
                for index_a, face_a in enumerate(faces)
                for face_b in faces[:index_a]
            ]
        if len(faces) == 2:
            if faces[0].spin != faces[1].spin:
                return [tensegrity.create_radial_pull(faces[0], faces[1])]
            return self._join_on_center_twist(faces)
        if len(faces) == 3:
            return self._join_on_center_twist(faces)
        logger.warning("cannot join %d faces", len(faces))
        return []

    def _join_on_center_twist(self, faces: Sequence[Face]) -> List[PullComplex]:
        tensegrity = self.tensegrity
        scale = percent_from_factor(
            sum(factor_from_percent(face.scale) for face in faces) / len(faces)
        )
        center = self.create_twist_at(tensegrity.location_from_faces(faces), Spin.LEFT_RIGHT, scale)
        taken: List[Face] = []
        complexes = []
        for face in faces:
            opposing = [
                candidate
                for candidate in center.faces
                if candidate.pulls
                and candidate.spin != face.spin
                and not any(candidate is used for used in taken)
            ]
            if not opposing:
                raise ConstructionError(f"no free face on the center twist for face {face.index}")
            location = tensegrity.location_from_face(face)
            closest = min(
                opposing,
                key=lambda candidate: distance(tensegrity.location_from_face(candidate), location),
            )
            taken.append(closest)
            complexes.append(tensegrity.create_radial_pull(closest, face))
        return complexes

    def check_connectors(
        self, pull_complexes: Sequence[PullComplex], remove_interval: Callable[[Interval], None]
    ) -> List[PullComplex]:
        """Connect the faces of every converged join complex.

        A complex whose connector hubs are within ``CONNECTOR_LENGTH`` is
        replaced by a ring connection between its faces and its intervals are
        handed to ``remove_interval``. Returns the complexes still pending.
        """

        remaining = []
        for complex_ in pull_complexes:
            connector = complex_.connector
            if connector.role == IntervalRole.CONNECTOR_PULL:
                span = self.tensegrity.joint_distance(connector.alpha, connector.omega)
                if span <= CONNECTOR_LENGTH:
                    self.rotate_for_best_ring(complex_.alpha, complex_.omega)
                    self.connect(
                        complex_.alpha,
                        complex_.omega,
                        connect_roles(complex_.alpha.omni, complex_.omega.omni),
                    )
                    for interval in complex_.intervals:
                        remove_interval(interval)
                    logger.debug("connector converged at %.4f", span)
                    continue
            remaining.append(complex_)
        return remaining

    # tips -----------------------------------------------------------------

    def create_tip_on(self, base_face: Face) -> Tip:
        """Cap ``base_face`` with a short push tied to every corner."""

        tensegrity = self.tensegrity
        alpha_location, omega_location = tip_point_pair(tensegrity, base_face)
        alpha = tensegrity.create_joint(alpha_location)
        omega = tensegrity.create_joint(omega_location)
        push = tensegrity.create_interval(alpha, omega, IntervalRole.TIP_PUSH, base_face.scale)
        tip = Tip(push)
        for joint in base_face.ends:
            tip.inner_pulls.append(
                tensegrity.create_interval(joint, alpha, IntervalRole.TIP_INNER, base_face.scale)
            )
            tip.outer_pulls.append(
                tensegrity.create_interval(joint, omega, IntervalRole.TIP_OUTER, base_face.scale)
            )
        for pull in base_face.pulls:
            tensegrity.remove_interval(pull)
        base_face.pulls = []
        base_face.tip = tip
        return tip

    def create_inter_tip(self, tip_a: Tip, tip_b: Tip, distance_scale: float) -> Interval:
        """Pull between two tips held at ``distance_scale`` percent of their distance."""

        alpha = tip_a.push.alpha
        omega = tip_b.push.alpha
        span = self.tensegrity.joint_distance(alpha, omega)
        scale = percent_from_factor(factor_from_percent(distance_scale) * span)
        return self.tensegrity.create_interval(alpha, omega, IntervalRole.INTER_TIP, scale)

    def face_to_origin(self, face: Face) -> None:
        points = [self.tensegrity.joint_location(end) for end in face.ends]
        self.tensegrity.engine.apply_matrix(face_to_origin_matrix(points))


__all__ = [
    "DEFAULT_DISTANCE_SCALE",
    "ConnectRoles",
    "connect_roles",
    "twist_point_pairs",
    "first_twist_point_pairs",
    "face_twist_point_pairs",
    "tip_point_pair",
    "TensegrityBuilder",
]
