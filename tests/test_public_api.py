import tensegrityfabric
from tensegrityfabric import Stage, build_fabric, grow


def test_public_api_exports():
    for name in tensegrityfabric.__all__:
        assert hasattr(tensegrityfabric, name)


def test_one_twist_reaches_pretenst():
    tensegrity = build_fabric("One", overrides={"pretensing-countdown": 30})
    assert grow(tensegrity) == Stage.SHAPING
    tensegrity.request_transition(Stage.PRETENSING)
    stage = tensegrity.iterate()
    assert stage == Stage.PRETENST
    assert tensegrity.life.stage == Stage.PRETENST
