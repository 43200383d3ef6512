"""
Tests for the rule-based gesture detectors.
"""

import pytest

from hand_sign_detection.core.landmarks import HandFrame
from hand_sign_detection.core.normalizer import normalize_hand, normalize_pair
from hand_sign_detection.core.rule_classifier import (
    RuleBasedClassifier,
    score_thermometer,
    score_circle,
    score_heart,
    score_v_sign,
    describe_sign,
    THERMOMETER,
    CIRCLE,
    HEART,
    V_SIGN,
)
from tests.builders import (
    CIRCLE as CIRCLE_SHAPE,
    HEART_LEFT,
    HEART_LEFT_WRIST,
    PINCH_AND_CIRCLE,
    THERMOMETER as THERMOMETER_SHAPE,
    V_SIGN as V_SHAPE,
    heart_hands,
    make_hand,
    pixel_frame,
)


def normalized(overrides=None, **kwargs):
    return normalize_hand(HandFrame.from_points(make_hand(overrides, **kwargs)))


class TestDetectors:

    def test_v_sign(self):
        score = score_v_sign(normalized(V_SHAPE))

        assert score.detected
        assert score.confidence == pytest.approx(1.0)
        assert all(score.conditions.values())

    def test_v_sign_needs_separated_fingers(self):
        together = dict(V_SHAPE)
        together[12] = (-10, -125)

        score = score_v_sign(normalized(together))

        assert not score.conditions["spread"]
        assert score.confidence == pytest.approx(0.90)

    def test_thermometer(self):
        score = score_thermometer(normalized(THERMOMETER_SHAPE))

        assert score.detected
        assert score.confidence == pytest.approx(1.0)

    def test_thermometer_rejects_fanned_fingers(self):
        score = score_thermometer(normalized(CIRCLE_SHAPE))

        assert not score.conditions["pinch"]
        assert not score.conditions["column"]
        assert score.confidence == pytest.approx(0.60)
        assert not score.detected

    def test_circle(self):
        score = score_circle(normalized(CIRCLE_SHAPE))

        assert score.detected
        assert score.confidence == pytest.approx(1.0)
        assert score.conditions["circle_low"]

    def test_circle_with_touching_tips_is_not_a_circle(self):
        closed = dict(CIRCLE_SHAPE)
        closed[8] = (-40, -60)

        score = score_circle(normalized(closed))

        assert not score.conditions["circle"]
        assert score.confidence == pytest.approx(0.65)

    def test_heart(self):
        first, second = normalize_pair(*(HandFrame.from_points(h) for h in heart_hands()))
        score = score_heart(first, second)

        # 0.40 + 0.30 * (1 - 0.5 * 10/50) + 0.30 * (1 - 0.5 * 16/80)
        assert score.confidence == pytest.approx(0.94)
        assert score.detected

    def test_heart_needs_two_hands(self):
        hand = normalized(HEART_LEFT, wrist=HEART_LEFT_WRIST)
        score = score_heart(hand, None)

        assert score.confidence == 0.0
        assert not score.detected

    def test_incomplete_heart_gets_partial_confidence(self):
        left, right = heart_hands()
        raised = [[x, y - 60.0, z] for x, y, z in right]
        first, second = normalize_pair(HandFrame.from_points(left), HandFrame.from_points(raised))

        score = score_heart(first, second)

        assert not score.conditions["level"]
        assert score.confidence == pytest.approx(0.45)
        assert not score.detected

    def test_neutral_hand_fires_nothing(self):
        hand = normalized()

        for detector in (score_thermometer, score_circle, score_v_sign):
            assert not detector(hand).detected


class TestRuleBasedClassifier:

    def test_classify_v_sign(self, v_hand):
        score = RuleBasedClassifier().classify(pixel_frame(v_hand))

        assert score.label == V_SIGN

    def test_classify_heart(self):
        score = RuleBasedClassifier().classify(pixel_frame(*heart_hands()))

        assert score.label == HEART

    def test_thermometer_outranks_circle(self):
        classifier = RuleBasedClassifier()
        frame = pixel_frame(make_hand(PINCH_AND_CIRCLE))

        detected = [s.label for s in classifier.evaluate(frame) if s.detected]
        assert detected == [THERMOMETER, CIRCLE]
        assert classifier.classify(frame).label == THERMOMETER

    def test_custom_priority(self):
        classifier = RuleBasedClassifier(priority=[CIRCLE, THERMOMETER])

        assert classifier.classify(pixel_frame(make_hand(PINCH_AND_CIRCLE))).label == CIRCLE

    def test_disabled_detector_never_fires(self, v_hand):
        classifier = RuleBasedClassifier(priority=[THERMOMETER, CIRCLE])

        assert classifier.classify(pixel_frame(v_hand)) is None

    def test_acceptance_override(self, v_hand):
        classifier = RuleBasedClassifier(acceptance={V_SIGN: 1.0})

        assert classifier.classify(pixel_frame(v_hand)) is None

    def test_position_in_frame_does_not_matter(self):
        classifier = RuleBasedClassifier()

        for wrist in [(60.0, 460.0), (320.0, 240.0), (600.0, 200.0)]:
            assert classifier.classify(pixel_frame(make_hand(V_SHAPE, wrist=wrist))).label == V_SIGN

    def test_empty_frame(self):
        assert RuleBasedClassifier().classify(pixel_frame()) is None

    def test_unknown_label_is_rejected(self):
        with pytest.raises(ValueError):
            RuleBasedClassifier(priority=["wave"])


def test_describe_sign():
    assert describe_sign(V_SIGN)["name"] == "Peace"
    assert describe_sign("hello") == {"name": "hello", "description": ""}


class TestReferenceScenarios:
    """Reference poses with round-number geometry, wrist at the origin."""

    def test_v_sign_fingers_at_80(self):
        hand = make_hand({8: (-20, -80), 12: (20, -80), 16: (15, 0), 20: (30, 0)}, wrist=(0.0, 0.0))

        score = score_v_sign(normalize_hand(HandFrame.from_points(hand)))

        assert score.detected
        assert score.confidence >= 0.7

    def test_circle_with_30px_gap(self):
        # thumb/index 30 apart, other fingers 40 above their knuckles
        hand = make_hand({4: (-30, -60), 8: (0, -60), 12: (0, -105), 16: (15, -100), 20: (30, -95)},
                         wrist=(0.0, 0.0))

        score = score_circle(normalize_hand(HandFrame.from_points(hand)))

        assert score.detected
        assert score.confidence >= 0.85

    def test_heart_with_wrists_200_apart(self):
        # thumbs 20 apart, index tips 50 apart, wrists 200 apart, 10 height difference
        left = make_hand({4: (90, -30), 8: (75, -80)}, wrist=(100.0, 300.0))
        right = make_hand({4: (-90, -30), 8: (-75, -80)}, wrist=(300.0, 310.0))

        first, second = normalize_pair(HandFrame.from_points(left), HandFrame.from_points(right))
        score = score_heart(first, second)

        assert score.detected
        assert score.confidence >= 0.8
        assert score.confidence == pytest.approx(0.84625)
        assert RuleBasedClassifier().classify(pixel_frame(left, right)).label == HEART
