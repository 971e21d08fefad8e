import pytest

from tensegrityfabric.errors import PreconditionError
from tensegrityfabric.model import (
    Interval,
    IntervalRole,
    Joint,
    Spin,
    Twist,
    is_omni_spin,
    opposite_spin,
    twist_face_names,
)


def test_spins():
    assert opposite_spin(Spin.LEFT) == Spin.RIGHT
    assert opposite_spin(Spin.LEFT_RIGHT) == Spin.RIGHT_LEFT
    assert is_omni_spin(Spin.RIGHT_LEFT)
    assert not is_omni_spin(Spin.RIGHT)


def test_twist_face_names():
    assert twist_face_names(2) == ["a", "A"]
    assert twist_face_names(8) == ["a", "b", "c", "d", "B", "C", "D", "A"]


def test_twist_face_lookup():
    twist = Twist(100.0, faces=["bottom", "top"])
    assert twist.face("A") == "top"
    with pytest.raises(PreconditionError):
        twist.face("b")


def test_interval_helpers():
    a, b, c = Joint(0), Joint(1), Joint(2)
    push = Interval(0, a, b, IntervalRole.ROOT_PUSH, 100.0)
    pull = Interval(1, b, c, IntervalRole.RING, 100.0)
    assert push.is_push and not pull.is_push
    assert push.other_joint(a) is b
    assert pull.connects(c, b)
    assert not pull.connects(a, b)


def test_identity_equality():
    assert Joint(0) != Joint(0)
