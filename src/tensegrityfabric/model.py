from __future__ import annotations

import string
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional

from .errors import PreconditionError


class IntervalRole(Enum):
    ROOT_PUSH = "root-push"
    PHI_PUSH = "phi-push"
    TWIST = "twist"
    PHI_TRIANGLE = "phi-triangle"
    RING = "ring"
    CROSS = "cross"
    INTER_TWIST = "inter-twist"
    FACE_CONNECTOR = "face-connector"
    FACE_DISTANCER = "face-distancer"
    FACE_ANCHOR = "face-anchor"
    RADIAL_PULL = "radial-pull"
    CONNECTOR_PULL = "connector-pull"
    TIP_PUSH = "tip-push"
    TIP_INNER = "tip-inner"
    TIP_OUTER = "tip-outer"
    INTER_TIP = "inter-tip"
    RIBBON_PUSH = "ribbon-push"
    RIBBON_SHORT = "ribbon-short"
    RIBBON_LONG = "ribbon-long"
    RIBBON_HANGER = "ribbon-hanger"


PUSH_ROLES = frozenset(
    {IntervalRole.ROOT_PUSH, IntervalRole.PHI_PUSH, IntervalRole.TIP_PUSH, IntervalRole.RIBBON_PUSH}
)
FACE_ROLES = frozenset(
    {IntervalRole.FACE_CONNECTOR, IntervalRole.FACE_DISTANCER, IntervalRole.FACE_ANCHOR}
)
CONNECTOR_ROLES = frozenset({IntervalRole.CONNECTOR_PULL})
RIBBON_ROLES = frozenset(
    {
        IntervalRole.RIBBON_PUSH,
        IntervalRole.RIBBON_SHORT,
        IntervalRole.RIBBON_LONG,
        IntervalRole.RIBBON_HANGER,
    }
)


def is_push_role(role: IntervalRole) -> bool:
    return role in PUSH_ROLES


def is_face_role(role: IntervalRole) -> bool:
    return role in FACE_ROLES


def is_connector_role(role: IntervalRole) -> bool:
    return role in CONNECTOR_ROLES


class Spin(Enum):
    LEFT = "L"
    RIGHT = "R"
    LEFT_RIGHT = "LR"
    RIGHT_LEFT = "RL"


def is_omni_spin(spin: Spin) -> bool:
    return spin in (Spin.LEFT_RIGHT, Spin.RIGHT_LEFT)


def opposite_spin(spin: Spin) -> Spin:
    return {
        Spin.LEFT: Spin.RIGHT,
        Spin.RIGHT: Spin.LEFT,
        Spin.LEFT_RIGHT: Spin.RIGHT_LEFT,
        Spin.RIGHT_LEFT: Spin.LEFT_RIGHT,
    }[spin]


class Stage(IntEnum):
    GROWING = 0
    SHAPING = 1
    SLACK = 2
    PRETENSING = 3
    PRETENST = 4


class FaceAction(Enum):
    JOIN = "join"
    DISTANCE = "distance"


class MarkAction(Enum):
    SUBTREE = "subtree"
    BASE_FACE = "base"
    JOIN_FACES = "join"
    FACE_DISTANCE = "distance"
    ANCHOR = "anchor"


@dataclass(eq=False)
class Joint:
    index: int


@dataclass(eq=False)
class Interval:
    index: int
    alpha: Joint
    omega: Joint
    role: IntervalRole
    scale: float
    removed: bool = False

    @property
    def is_push(self) -> bool:
        return is_push_role(self.role)

    def other_joint(self, joint: Joint) -> Joint:
        return self.omega if joint.index == self.alpha.index else self.alpha

    def connects(self, a: Joint, b: Joint) -> bool:
        return (self.alpha.index == a.index and self.omega.index == b.index) or (
            self.alpha.index == b.index and self.omega.index == a.index
        )


@dataclass(eq=False)
class Tip:
    push: Interval
    inner_pulls: List[Interval] = field(default_factory=list)
    outer_pulls: List[Interval] = field(default_factory=list)


@dataclass(eq=False)
class Face:
    """Ordered polygon of joints; ``pulls`` are its boundary members."""

    index: int
    omni: bool
    spin: Spin
    scale: float
    ends: List[Joint]
    pulls: List[Interval]
    mark: Optional[int] = None
    tip: Optional[Tip] = None

    @property
    def can_grow(self) -> bool:
        return self.tip is None and len(self.pulls) > 0


@dataclass(eq=False)
class PullComplex:
    """Hub-and-spoke scaffold drawing two faces together."""

    connector: Interval
    alpha: Face
    omega: Face
    alpha_spokes: List[Interval]
    omega_spokes: List[Interval]

    @property
    def intervals(self) -> List[Interval]:
        return [self.connector, *self.alpha_spokes, *self.omega_spokes]


@dataclass(eq=False)
class FaceAnchor:
    face: Face
    joint: Joint
    pulls: List[Interval]


def twist_face_names(face_count: int) -> List[str]:
    """Names of a twist's faces in construction order.

    A regular twist has ``a`` (base) and ``A`` (top). An omni twist of
    ``2 + 2n`` faces lists the base, the n faces touching the base, the n
    faces touching the top and then the top.
    """

    if face_count == 2:
        return ["a", "A"]
    n = (face_count - 2) // 2
    lower = string.ascii_lowercase[1 : n + 1]
    upper = string.ascii_uppercase[1 : n + 1]
    return ["a", *lower, *upper, "A"]


@dataclass(eq=False)
class Twist:
    scale: float
    faces: List[Face] = field(default_factory=list)
    pushes: List[Interval] = field(default_factory=list)
    pulls: List[Interval] = field(default_factory=list)

    def face(self, name: str) -> Face:
        names = twist_face_names(len(self.faces))
        if name not in names:
            raise PreconditionError(f"twist has no face named {name!r}")
        return self.faces[names.index(name)]


__all__ = [
    "IntervalRole",
    "PUSH_ROLES",
    "FACE_ROLES",
    "CONNECTOR_ROLES",
    "RIBBON_ROLES",
    "is_push_role",
    "is_face_role",
    "is_connector_role",
    "Spin",
    "is_omni_spin",
    "opposite_spin",
    "Stage",
    "FaceAction",
    "MarkAction",
    "Joint",
    "Interval",
    "Tip",
    "Face",
    "PullComplex",
    "FaceAnchor",
    "twist_face_names",
    "Twist",
]
