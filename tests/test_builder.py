import logging

import numpy as np
import pytest

from tensegrityfabric.builder import (
    DEFAULT_DISTANCE_SCALE,
    ConnectRoles,
    connect_roles,
    first_twist_point_pairs,
)
from tensegrityfabric.errors import PreconditionError
from tensegrityfabric.features import numeric_features
from tensegrityfabric.geometry import normal
from tensegrityfabric.model import FaceAction, IntervalRole, Spin
from tensegrityfabric.presets import build_fabric


def _fabric():
    return build_fabric("'One':(0)")


def test_connect_roles_table():
    assert connect_roles(False, False) == ConnectRoles(
        IntervalRole.RING, IntervalRole.INTER_TWIST, IntervalRole.INTER_TWIST
    )
    assert connect_roles(True, False).up == IntervalRole.CROSS
    assert connect_roles(False, True).down == IntervalRole.CROSS
    assert set(connect_roles(True, True)) == {IntervalRole.PHI_TRIANGLE}


def test_first_twist_stands_on_xz_ring():
    pairs = first_twist_point_pairs((0.0, 0.0, 0.0), 3, Spin.LEFT, 100, numeric_features())
    alphas = np.array([alpha for alpha, _ in pairs])
    omegas = np.array([omega for _, omega in pairs])
    assert np.allclose(alphas[:, 1], 0.0)
    assert np.allclose(omegas[:, 1], 2.123 / np.sqrt(3))


def test_twist_diagonals_follow_spin():
    for spin, offset in ((Spin.LEFT, 2), (Spin.RIGHT, 1)):
        tensegrity = _fabric()
        twist = tensegrity.builder().create_twist_at((5.0, 0.0, 0.0), spin, 100)
        alphas = [push.alpha for push in twist.pushes]
        omegas = [push.omega for push in twist.pushes]
        diagonals = twist.pulls[-3:]
        for index, pull in enumerate(diagonals):
            assert pull.alpha is alphas[index]
            assert pull.omega is omegas[(index + offset) % 3]
        assert all(face.spin == spin for face in twist.faces)


def test_ring_matching_counts_and_consumes_faces():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    left = builder.create_twist_at((0.0, 5.0, 0.0), Spin.LEFT, 100)
    right = builder.create_twist_at((0.0, 10.0, 0.0), Spin.RIGHT, 100)
    face_a, face_b = left.face("A"), right.face("a")
    old_pulls = face_a.pulls + face_b.pulls
    faces_before = len(tensegrity.faces)
    pulls = builder.connect(face_a, face_b, connect_roles(True, False))
    n = 3
    assert [p.role for p in pulls].count(IntervalRole.RING) == 2 * n
    assert [p.role for p in pulls].count(IntervalRole.CROSS) == n
    assert [p.role for p in pulls].count(IntervalRole.INTER_TWIST) == n
    assert all(face is not face_a and face is not face_b for face in tensegrity.faces)
    assert face_a.pulls == [] and face_b.pulls == []
    assert all(p.removed for p in old_pulls)
    assert len(tensegrity.faces) == faces_before - 2 + 2 * n
    for face in tensegrity.faces:
        for i, pull in enumerate(face.pulls):
            assert pull.connects(face.ends[i], face.ends[(i + 1) % len(face.ends)])


def test_ring_matching_between_omni_faces_adds_no_faces():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    left = builder.create_twist_at((0.0, 5.0, 0.0), Spin.LEFT, 100)
    right = builder.create_twist_at((0.0, 10.0, 0.0), Spin.RIGHT, 100)
    faces_before = len(tensegrity.faces)
    pulls = builder.connect(left.face("A"), right.face("a"), connect_roles(True, True))
    assert len(pulls) == 12
    assert len(tensegrity.faces) == faces_before - 2


def test_omni_twist_fusion():
    tensegrity = _fabric()
    twist = tensegrity.builder().create_twist_at((0.0, 5.0, 0.0), Spin.LEFT_RIGHT, 100)
    n = tensegrity.pushes_per_twist
    assert len(twist.faces) == 2 + 2 * n
    assert twist.faces[0].omni and twist.faces[-1].omni
    assert not any(face.omni for face in twist.faces[1:-1])
    assert len(twist.pushes) == 2 * n
    assert all(p.role == IntervalRole.PHI_PUSH for p in twist.pushes)
    for face in twist.faces:
        assert face in tensegrity.faces
        for i, pull in enumerate(face.pulls):
            assert pull.connects(face.ends[i], face.ends[(i + 1) % 3])
    assert twist.face("b") is twist.faces[1]
    assert twist.face("B") is twist.faces[n + 1]


def test_grow_omni_on_face():
    tensegrity = _fabric()
    twist = tensegrity.builder().create_twist_on(tensegrity.faces[1], 100, True)
    assert len(twist.faces) == 8
    assert all(face in tensegrity.faces for face in twist.faces[1:])


def test_twist_on_consumed_face_fails():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    top = tensegrity.faces[1]
    builder.create_twist_on(top, 100, False)
    with pytest.raises(PreconditionError):
        builder.create_twist_on(top, 100, False)


def test_twist_on_scale_is_relative():
    tensegrity = _fabric()
    twist = tensegrity.builder().create_twist_on(tensegrity.faces[1], 50, False)
    assert twist.scale == pytest.approx(50.0)
    nested = tensegrity.builder().create_twist_on(twist.face("A"), 50, False)
    assert nested.scale == pytest.approx(25.0)


def test_rotate_for_best_ring_pairs_nearest_corners():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    alpha, omega = tensegrity.faces
    omega.ends = omega.ends[1:] + omega.ends[:1]
    builder.rotate_for_best_ring(alpha, omega)
    reversed_alpha = list(reversed(alpha.ends))
    total = sum(
        tensegrity.joint_distance(a, b) for a, b in zip(reversed_alpha, omega.ends)
    )
    for shift in range(1, 3):
        rolled = omega.ends[shift:] + omega.ends[:shift]
        other = sum(tensegrity.joint_distance(a, b) for a, b in zip(reversed_alpha, rolled))
        assert total <= other + 1e-12


def test_distance_complexes_for_every_pair():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    faces = [
        builder.create_twist_at((x, 0.0, 0.0), Spin.LEFT, 100).face("A") for x in (0.0, 6.0, 12.0)
    ]
    complexes = builder.create_radial_pulls(faces, FaceAction.DISTANCE)
    assert len(complexes) == 3
    engine = tensegrity.engine
    for complex_ in complexes:
        connector = complex_.connector
        assert connector.role == IntervalRole.FACE_DISTANCER
        span = tensegrity.joint_distance(connector.alpha, connector.omega)
        assert engine.target_lengths[connector.index] == pytest.approx(
            DEFAULT_DISTANCE_SCALE / 100 * span
        )
        assert len(complex_.alpha_spokes) == 3 and len(complex_.omega_spokes) == 3


def test_join_opposite_spins_direct():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    a = builder.create_twist_at((0.0, 0.0, 0.0), Spin.LEFT, 100).face("A")
    b = builder.create_twist_at((6.0, 0.0, 0.0), Spin.RIGHT, 100).face("A")
    complexes = builder.create_radial_pulls([a, b], FaceAction.JOIN)
    assert len(complexes) == 1
    assert complexes[0].connector.role == IntervalRole.CONNECTOR_PULL


def test_join_same_spin_meets_on_center_twist():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    a = builder.create_twist_at((0.0, 0.0, 0.0), Spin.LEFT, 100).face("A")
    b = builder.create_twist_at((6.0, 0.0, 0.0), Spin.LEFT, 100).face("A")
    pushes_before = len([i for i in tensegrity.intervals if i.is_push])
    complexes = builder.create_radial_pulls([a, b], FaceAction.JOIN)
    assert len([i for i in tensegrity.intervals if i.is_push]) == pushes_before + 6
    assert len(complexes) == 2
    assert complexes[0].alpha is not complexes[1].alpha
    for complex_, face in zip(complexes, (a, b)):
        assert complex_.omega is face
        assert complex_.alpha.spin != face.spin


def test_join_too_many_faces_is_skipped(caplog):
    tensegrity = _fabric()
    builder = tensegrity.builder()
    faces = [
        builder.create_twist_at((x, 0.0, 0.0), Spin.LEFT, 100).face("A")
        for x in (0.0, 6.0, 12.0, 18.0)
    ]
    with caplog.at_level(logging.WARNING):
        assert builder.create_radial_pulls(faces, FaceAction.JOIN) == []
    assert "cannot join 4 faces" in caplog.text


def test_check_connectors_converges_once():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    a = builder.create_twist_at((0.0, 0.0, 0.0), Spin.LEFT, 100).face("A")
    b = builder.create_twist_at((0.0, 4.0, 0.0), Spin.RIGHT, 100).face("a")
    complex_ = tensegrity.create_radial_pull(a, b)
    removed = []

    def remove(interval):
        removed.append(interval)
        tensegrity.remove_interval(interval)

    active = builder.check_connectors([complex_], remove)
    assert active == [complex_]
    assert removed == []

    hub = tensegrity.joint_location(complex_.connector.alpha)
    tensegrity.engine.set_joint_location(complex_.connector.omega.index, hub + [0.0, 0.01, 0.0])
    active = builder.check_connectors(active, remove)
    assert active == []
    assert len(removed) == 1 + 3 + 3
    assert all(interval.removed for interval in complex_.intervals)
    assert a not in tensegrity.faces and b not in tensegrity.faces

    assert builder.check_connectors(active, remove) == []
    assert len(removed) == 7


def test_distance_complexes_never_connect():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    a = builder.create_twist_at((0.0, 0.0, 0.0), Spin.LEFT, 100).face("A")
    b = builder.create_twist_at((0.0, 4.0, 0.0), Spin.RIGHT, 100).face("a")
    complex_ = tensegrity.create_radial_pull(a, b, 50)
    hub = tensegrity.joint_location(complex_.connector.alpha)
    tensegrity.engine.set_joint_location(complex_.connector.omega.index, hub)
    assert builder.check_connectors([complex_], tensegrity.remove_interval) == [complex_]


def test_tip_caps_face():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    face = tensegrity.faces[1]
    old_pulls = list(face.pulls)
    tip = builder.create_tip_on(face)
    assert tip.push.role == IntervalRole.TIP_PUSH
    assert len(tip.inner_pulls) == 3 and len(tip.outer_pulls) == 3
    assert all(p.removed for p in old_pulls)
    assert face.tip is tip
    assert not face.can_grow


def test_inter_tip_rest_length():
    tensegrity = _fabric()
    builder = tensegrity.builder()
    tip_a = builder.create_tip_on(tensegrity.faces[0])
    tip_b = builder.create_tip_on(tensegrity.faces[1])
    interval = builder.create_inter_tip(tip_a, tip_b, 50)
    span = tensegrity.joint_distance(tip_a.push.alpha, tip_b.push.alpha)
    assert interval.role == IntervalRole.INTER_TIP
    assert tensegrity.engine.target_lengths[interval.index] == pytest.approx(0.5 * span)


def test_face_to_origin():
    tensegrity = _fabric()
    face = tensegrity.faces[1]
    tensegrity.builder().face_to_origin(face)
    points = [tensegrity.joint_location(end) for end in face.ends]
    assert np.allclose(tensegrity.location_from_face(face), 0.0, atol=1e-9)
    assert np.allclose(normal(points), [0.0, -1.0, 0.0], atol=1e-9)
