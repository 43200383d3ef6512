"""
Rule-based gesture detectors.

Each detector is a pure function of wrist-normalized landmarks returning a
``RuleScore``. Confidence is a weighted sum of satisfied sub-conditions.

All distances are pixel units of the 640x480 reference frame and the y axis
points down, so a fingertip "above" the wrist has a negative normalized y.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

from .landmarks import HandFrame, MultiHandFrame, LandmarkIndex as L
from .normalizer import Normalizer
from ..utils.logger import Logger


THERMOMETER = "thermometer"
CIRCLE = "circle"
HEART = "heart"
V_SIGN = "v_sign"

DEFAULT_PRIORITY = (THERMOMETER, CIRCLE, HEART, V_SIGN)

DEFAULT_ACCEPTANCE = {
    THERMOMETER: 0.80,
    CIRCLE: 0.60,
    HEART: 0.70,
    V_SIGN: 0.65,
}

# Display metadata for the built-in signs
BUILTIN_SIGNS = {
    THERMOMETER: {"name": "Fever", "description": "Thumb and index pinched like a thermometer, other fingers up"},
    CIRCLE: {"name": "OK", "description": "Thumb and index form a circle, other fingers extended"},
    HEART: {"name": "Love", "description": "Both hands shape a heart with thumbs and index fingers"},
    V_SIGN: {"name": "Peace", "description": "Index and middle fingers raised in a V"},
}

# Thermometer (px)
THERMO_PINCH_MAX = 40.0          # thumb tip to index tip
THERMO_FINGER_RISE = 20.0        # middle/ring/pinky tips above wrist
THERMO_COLUMN_SPREAD_MAX = 60.0  # horizontal spread of middle/ring/pinky tips
THERMO_WEIGHTS = {"pinch": 0.30, "middle_up": 0.20, "ring_up": 0.20, "pinky_up": 0.20, "column": 0.10}

# Circle (px)
CIRCLE_DIST_MIN = 10.0           # thumb tip to index tip, exclusive
CIRCLE_DIST_MAX = 60.0
CIRCLE_MIDDLE_RISE = 30.0        # tip above its own knuckle
CIRCLE_RING_RISE = 25.0
CIRCLE_PINKY_RISE = 20.0
CIRCLE_WEIGHTS = {"circle": 0.35, "middle_up": 0.25, "ring_up": 0.20, "pinky_up": 0.15, "circle_low": 0.05}

# Heart (px, horizontal distances between the two hands)
HEART_THUMB_MAX = 50.0
HEART_INDEX_MAX = 80.0
HEART_WRIST_MIN = 100.0
HEART_HEIGHT_DIFF_MAX = 40.0
HEART_BASE = 0.40
HEART_PROXIMITY_WEIGHT = 0.30
HEART_PARTIAL_WEIGHT = 0.15      # per satisfied condition when the shape is incomplete

# V (px)
V_FINGER_RISE = 40.0             # index/middle tips above wrist
V_FOLDED_RISE_MAX = 20.0         # ring/pinky tips no higher than this above wrist
V_THUMB_RISE_MAX = 25.0
V_SEPARATION_MIN = 25.0          # horizontal index/middle separation
V_SEPARATION_MAX = 100.0
V_HEIGHT_DIFF_MAX = 30.0
V_WEIGHTS = {"index_up": 0.25, "middle_up": 0.25, "ring_down": 0.15, "pinky_down": 0.15,
             "thumb_down": 0.10, "spread": 0.10}


@dataclass
class RuleScore:
    """Result of one detector on one frame."""
    label: str
    confidence: float
    detected: bool
    conditions: Dict[str, bool] = field(default_factory=dict)


def _weighted(weights: Dict[str, float], conditions: Dict[str, bool]) -> float:
    confidence = sum(weights[name] for name, met in conditions.items() if met)
    return min(1.0, round(confidence, 6))


def _rise(hand: HandFrame, tip: int, base: int = L.WRIST) -> float:
    """How far a landmark sits above another (positive when higher on screen)."""
    return float(hand.points[base, 1] - hand.points[tip, 1])


def _distance_2d(hand: HandFrame, a: int, b: int) -> float:
    return float(np.linalg.norm(hand.points[a, :2] - hand.points[b, :2]))


def score_thermometer(hand: HandFrame, acceptance: float = DEFAULT_ACCEPTANCE[THERMOMETER]) -> RuleScore:
    """Thumb and index pinched together while the other three fingers point up in a column."""
    tips_x = hand.points[[L.MIDDLE_TIP, L.RING_TIP, L.PINKY_TIP], 0]
    conditions = {
        "pinch": _distance_2d(hand, L.THUMB_TIP, L.INDEX_TIP) < THERMO_PINCH_MAX,
        "middle_up": _rise(hand, L.MIDDLE_TIP) > THERMO_FINGER_RISE,
        "ring_up": _rise(hand, L.RING_TIP) > THERMO_FINGER_RISE,
        "pinky_up": _rise(hand, L.PINKY_TIP) > THERMO_FINGER_RISE,
        "column": float(tips_x.max() - tips_x.min()) < THERMO_COLUMN_SPREAD_MAX,
    }
    confidence = _weighted(THERMO_WEIGHTS, conditions)
    return RuleScore(THERMOMETER, confidence, confidence > acceptance, conditions)


def score_circle(hand: HandFrame, acceptance: float = DEFAULT_ACCEPTANCE[CIRCLE]) -> RuleScore:
    """Thumb and index tips touch to form a circle; middle, ring and pinky extended."""
    distance = _distance_2d(hand, L.THUMB_TIP, L.INDEX_TIP)
    middle_tip_y = hand.points[L.MIDDLE_TIP, 1]
    conditions = {
        "circle": CIRCLE_DIST_MIN < distance < CIRCLE_DIST_MAX,
        "middle_up": _rise(hand, L.MIDDLE_TIP, L.MIDDLE_MCP) >= CIRCLE_MIDDLE_RISE,
        "ring_up": _rise(hand, L.RING_TIP, L.RING_MCP) >= CIRCLE_RING_RISE,
        "pinky_up": _rise(hand, L.PINKY_TIP, L.PINKY_MCP) >= CIRCLE_PINKY_RISE,
        "circle_low": bool(
            hand.points[L.THUMB_TIP, 1] > middle_tip_y and hand.points[L.INDEX_TIP, 1] > middle_tip_y
        ),
    }
    confidence = _weighted(CIRCLE_WEIGHTS, conditions)
    return RuleScore(CIRCLE, confidence, confidence > acceptance, conditions)


def score_heart(
    first: Optional[HandFrame],
    second: Optional[HandFrame],
    acceptance: float = DEFAULT_ACCEPTANCE[HEART]
) -> RuleScore:
    """
    Two hands shaping a heart.

    Thumb tips and index tips of both hands meet horizontally while the wrists
    stay apart at about the same height. All four conditions are required;
    confidence then grows the further both tip gaps are below their limits.
    """
    if first is None or second is None:
        return RuleScore(HEART, 0.0, False, {"two_hands": False})

    thumb_gap = abs(float(first.points[L.THUMB_TIP, 0] - second.points[L.THUMB_TIP, 0]))
    index_gap = abs(float(first.points[L.INDEX_TIP, 0] - second.points[L.INDEX_TIP, 0]))
    wrist_gap = abs(float(first.points[L.WRIST, 0] - second.points[L.WRIST, 0]))
    height_diff = abs(float(first.points[L.WRIST, 1] - second.points[L.WRIST, 1]))

    conditions = {
        "thumbs_close": thumb_gap < HEART_THUMB_MAX,
        "index_close": index_gap < HEART_INDEX_MAX,
        "wrists_apart": wrist_gap > HEART_WRIST_MIN,
        "level": height_diff < HEART_HEIGHT_DIFF_MAX,
    }

    if all(conditions.values()):
        confidence = (
            HEART_BASE
            + HEART_PROXIMITY_WEIGHT * _proximity(thumb_gap, HEART_THUMB_MAX)
            + HEART_PROXIMITY_WEIGHT * _proximity(index_gap, HEART_INDEX_MAX)
        )
    else:
        confidence = HEART_PARTIAL_WEIGHT * sum(conditions.values())

    confidence = min(1.0, round(confidence, 6))
    detected = all(conditions.values()) and confidence > acceptance
    return RuleScore(HEART, confidence, detected, conditions)


def _proximity(gap: float, limit: float) -> float:
    """1.0 when the gap is zero, 0.5 right at the limit."""
    return 1.0 - 0.5 * (gap / limit)


def score_v_sign(hand: HandFrame, acceptance: float = DEFAULT_ACCEPTANCE[V_SIGN]) -> RuleScore:
    """Index and middle raised and spread apart; ring, pinky and thumb folded."""
    separation = abs(float(hand.points[L.INDEX_TIP, 0] - hand.points[L.MIDDLE_TIP, 0]))
    height_diff = abs(float(hand.points[L.INDEX_TIP, 1] - hand.points[L.MIDDLE_TIP, 1]))
    conditions = {
        "index_up": _rise(hand, L.INDEX_TIP) > V_FINGER_RISE,
        "middle_up": _rise(hand, L.MIDDLE_TIP) > V_FINGER_RISE,
        "ring_down": _rise(hand, L.RING_TIP) < V_FOLDED_RISE_MAX,
        "pinky_down": _rise(hand, L.PINKY_TIP) < V_FOLDED_RISE_MAX,
        "thumb_down": _rise(hand, L.THUMB_TIP) < V_THUMB_RISE_MAX,
        "spread": (V_SEPARATION_MIN <= separation <= V_SEPARATION_MAX) and height_diff < V_HEIGHT_DIFF_MAX,
    }
    confidence = _weighted(V_WEIGHTS, conditions)
    return RuleScore(V_SIGN, confidence, confidence > acceptance, conditions)


class RuleBasedClassifier:
    """Runs the detector bank on a frame and resolves overlaps by priority."""

    def __init__(
        self,
        acceptance: Optional[Dict[str, float]] = None,
        priority: Sequence[str] = DEFAULT_PRIORITY,
        normalizer: Optional[Normalizer] = None,
        logger: Optional[Logger] = None
    ):
        """
        Initialize the classifier bank.

        Args:
            acceptance: Per-gesture acceptance thresholds overriding the defaults
            priority: Gesture labels from highest to lowest precedence; labels
                left out are disabled
            normalizer: Normalizer applied before scoring
            logger: Logger instance
        """
        self.acceptance = dict(DEFAULT_ACCEPTANCE)
        if acceptance:
            self.acceptance.update(acceptance)
        self.priority = list(priority)
        self.normalizer = normalizer or Normalizer()
        self.logger = logger or Logger("rule_classifier")

        unknown = set(self.priority) - set(DEFAULT_PRIORITY)
        if unknown:
            raise ValueError(f"Unknown rule gestures: {sorted(unknown)}")

    def evaluate(self, frame: MultiHandFrame) -> List[RuleScore]:
        """
        Score every enabled detector, in priority order.

        Single-hand detectors look at the first observed hand.
        """
        if frame.is_empty:
            return []

        hand = self.normalizer.hand(frame.hands[0])
        pair: Tuple[Optional[HandFrame], Optional[HandFrame]] = (None, None)
        if frame.hand_count == 2:
            pair = self.normalizer.pair(frame.hands[0], frame.hands[1])

        scores = []
        for label in self.priority:
            threshold = self.acceptance[label]
            if label == THERMOMETER:
                scores.append(score_thermometer(hand, threshold))
            elif label == CIRCLE:
                scores.append(score_circle(hand, threshold))
            elif label == HEART:
                scores.append(score_heart(pair[0], pair[1], threshold))
            elif label == V_SIGN:
                scores.append(score_v_sign(hand, threshold))

        return scores

    def classify(self, frame: MultiHandFrame) -> Optional[RuleScore]:
        """
        Classify a frame.

        Returns:
            Highest-priority detector whose confidence passed its threshold,
            or None when nothing fired
        """
        for score in self.evaluate(frame):
            if score.detected:
                self.logger.debug(f"Rule '{score.label}' fired: {score.confidence:.3f} {score.conditions}")
                return score
        return None


def describe_sign(label: str) -> Dict[str, str]:
    """Get display metadata for a label, falling back to the label itself."""
    return BUILTIN_SIGNS.get(label, {"name": label, "description": ""})
