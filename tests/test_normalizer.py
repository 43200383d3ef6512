"""
Tests for wrist-relative normalization.
"""

import numpy as np
import pytest

from hand_sign_detection.core.landmarks import HandFrame, LandmarkIndex
from hand_sign_detection.core.normalizer import Normalizer, normalize_hand, normalize_pair, align_rotation
from tests.builders import heart_hands, make_hand, V_SIGN


def test_wrist_becomes_origin(v_hand):
    normalized = normalize_hand(HandFrame.from_points(v_hand))

    assert np.allclose(normalized.points[LandmarkIndex.WRIST], 0.0)
    assert normalized.point(LandmarkIndex.INDEX_TIP) == (-20.0, -120.0, 0.0)


def test_translation_invariance():
    here = HandFrame.from_points(make_hand(V_SIGN, wrist=(100.0, 150.0)))
    there = HandFrame.from_points(make_hand(V_SIGN, wrist=(500.0, 420.0)))

    assert normalize_hand(here).allclose(normalize_hand(there))


def test_depth_is_rebased_too():
    hand = HandFrame.from_points(make_hand(V_SIGN, z=-12.0))

    assert np.allclose(normalize_hand(hand).points[:, 2], 0.0)


def test_pair_keeps_inter_hand_offset():
    left, right = (HandFrame.from_points(h) for h in heart_hands())
    first, second = normalize_pair(left, right)

    assert np.allclose(first.points[LandmarkIndex.WRIST], 0.0)
    assert second.wrist.x == pytest.approx(140.0)
    assert second.wrist.y == pytest.approx(0.0)


def test_align_rotation_turns_hand_upright():
    # Hand pointing right: wrist -> middle knuckle along +x
    sideways = [[-y, x, 0.0] for x, y, _ in make_hand(V_SIGN, wrist=(0.0, 0.0))]
    upright = align_rotation(HandFrame.from_points(sideways))

    middle_mcp = upright.point(LandmarkIndex.MIDDLE_MCP)
    assert middle_mcp.x == pytest.approx(0.0, abs=1e-9)
    assert middle_mcp.y == pytest.approx(-65.0)
    assert upright.allclose(HandFrame.from_points(make_hand(V_SIGN, wrist=(0.0, 0.0))), atol=1e-9)


def test_normalizer_only_rotates_when_enabled():
    sideways = HandFrame.from_points([[-y, x, 0.0] for x, y, _ in make_hand(V_SIGN, wrist=(0.0, 0.0))])

    plain = Normalizer().hand(sideways)
    aligned = Normalizer(align_rotation=True).hand(sideways)

    assert plain.allclose(sideways)
    assert not aligned.allclose(sideways)
