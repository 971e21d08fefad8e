import numpy as np
import pytest

from tensegrityfabric.errors import ConstructionError
from tensegrityfabric.export import INTERVAL_COLUMNS, joint_array, to_interval_dataframe
from tensegrityfabric.model import Interval, IntervalRole, Joint
from tensegrityfabric.presets import build_fabric


def test_fabric_output_and_dataframe_consistency():
    tensegrity = build_fabric("'Column':(1)")
    tensegrity.iterate()
    output = tensegrity.fabric_output(push_radius=0.2, pull_radius=0.02, joint_radius=0.3)
    assert output["name"] == "Column"
    assert len(output["joints"]) == tensegrity.engine.joint_count
    assert len(output["intervals"]) == tensegrity.engine.interval_count

    locations = tensegrity.engine.locations
    assert np.allclose(joint_array(output), locations[:, [0, 2, 1]])
    assert all(j["radius"] == 0.3 for j in output["joints"])

    df = to_interval_dataframe(output)
    assert list(df.columns) == INTERVAL_COLUMNS
    assert len(df) == len(tensegrity.intervals)
    lengths = tensegrity.engine.interval_lengths()
    assert np.allclose(df["length"], lengths[df["index"].to_numpy()])
    pushes = df[df["is_push"]]
    assert (pushes["radius"] == 0.2).all()
    assert set(pushes["role"]) == {IntervalRole.ROOT_PUSH.value}
    assert (df[~df["is_push"]]["radius"] == 0.02).all()


def test_anchor_joints_flagged():
    tensegrity = build_fabric("'One':(0)")
    anchor = tensegrity.create_face_anchor(tensegrity.faces[1])
    output = tensegrity.fabric_output()
    flagged = [j["index"] for j in output["joints"] if j["anchor"]]
    assert flagged == [anchor.joint.index]


def test_dangling_joint_is_reported():
    tensegrity = build_fabric("'One':(0)")
    tensegrity.intervals.append(Interval(0, Joint(0), Joint(99), IntervalRole.RING, 100.0))
    with pytest.raises(ConstructionError):
        tensegrity.fabric_output()
