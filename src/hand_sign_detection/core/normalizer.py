"""
Wrist-relative landmark normalization.
"""

import numpy as np
from typing import Tuple

from .landmarks import HandFrame, MultiHandFrame, LandmarkIndex


def normalize_hand(hand: HandFrame) -> HandFrame:
    """
    Rebase a hand onto its wrist.

    Every landmark has the wrist point subtracted component-wise, which makes
    the result independent of where the hand sits in the frame. Rotation and
    scale are left untouched.
    """
    wrist = hand.points[LandmarkIndex.WRIST]
    return HandFrame(points=hand.points - wrist, handedness=hand.handedness)


def normalize_pair(first: HandFrame, second: HandFrame) -> Tuple[HandFrame, HandFrame]:
    """
    Rebase two hands onto the first hand's wrist.

    Inter-hand geometry survives, so two-handed gestures can still measure
    distances between the hands.
    """
    origin = first.points[LandmarkIndex.WRIST]
    return (
        HandFrame(points=first.points - origin, handedness=first.handedness),
        HandFrame(points=second.points - origin, handedness=second.handedness),
    )


def align_rotation(hand: HandFrame) -> HandFrame:
    """
    Rotate a wrist-normalized hand so wrist->middle knuckle points straight up.

    This is an optional enhancement over plain wrist normalization and is only
    applied when ``normalization.align_rotation`` is enabled. Rotation happens
    in the image plane; depth is kept as is.
    """
    direction = hand.points[LandmarkIndex.MIDDLE_MCP, :2] - hand.points[LandmarkIndex.WRIST, :2]
    length = np.linalg.norm(direction)
    if length < 1e-9:
        return hand

    # Angle that maps the direction onto (0, -1), i.e. "up" with y pointing down
    current = np.arctan2(direction[1], direction[0])
    theta = -np.pi / 2 - current
    cos_t, sin_t = np.cos(theta), np.sin(theta)
    rotation = np.array([[cos_t, -sin_t], [sin_t, cos_t]])

    wrist = hand.points[LandmarkIndex.WRIST]
    rotated = hand.points.copy()
    rotated[:, :2] = (hand.points[:, :2] - wrist[:2]) @ rotation.T + wrist[:2]
    return HandFrame(points=rotated, handedness=hand.handedness)


class Normalizer:
    """Applies the configured normalization to hands and frames."""

    def __init__(self, align_rotation: bool = False):
        """
        Initialize the normalizer.

        Args:
            align_rotation: Also rotate each hand upright after rebasing
        """
        self.align_rotation = align_rotation

    def hand(self, hand: HandFrame) -> HandFrame:
        normalized = normalize_hand(hand)
        if self.align_rotation:
            normalized = align_rotation(normalized)
        return normalized

    def pair(self, first: HandFrame, second: HandFrame) -> Tuple[HandFrame, HandFrame]:
        # Rotating each hand separately would break the inter-hand geometry
        return normalize_pair(first, second)

    def frame(self, frame: MultiHandFrame) -> MultiHandFrame:
        return MultiHandFrame(
            hands=tuple(self.hand(hand) for hand in frame.hands),
            observed_at=frame.observed_at
        )
