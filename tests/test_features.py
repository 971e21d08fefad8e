import pytest

from tensegrityfabric.features import (
    FEATURE_DEFAULTS,
    WorldFeature,
    features_from_json,
    features_to_json,
    numeric_features,
)


def test_every_feature_has_a_default():
    assert set(FEATURE_DEFAULTS) == set(WorldFeature)
    numeric_feature = numeric_features()
    for feature in WorldFeature:
        assert numeric_feature(feature) == FEATURE_DEFAULTS[feature]


def test_overrides_by_member_or_name():
    numeric_feature = numeric_features({WorldFeature.DRAG: 0.5, "gravity": 0.1})
    assert numeric_feature(WorldFeature.DRAG) == 0.5
    assert numeric_feature(WorldFeature.GRAVITY) == 0.1
    assert numeric_feature(WorldFeature.TIME_STEP) == FEATURE_DEFAULTS[WorldFeature.TIME_STEP]


def test_unknown_override_rejected():
    with pytest.raises(ValueError):
        numeric_features({"levity": 1.0})


def test_overrides_are_independent():
    a = numeric_features({"drag": 0.3})
    b = numeric_features()
    assert a(WorldFeature.DRAG) == 0.3
    assert b(WorldFeature.DRAG) == FEATURE_DEFAULTS[WorldFeature.DRAG]


def test_json():
    text = features_to_json({WorldFeature.PRETENST_FACTOR: 0.05})
    assert '"pretenst-factor": 0.05' in text
    assert features_from_json(text) == {WorldFeature.PRETENST_FACTOR: 0.05}
