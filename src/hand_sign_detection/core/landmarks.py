"""
Hand landmark containers and the frame ingestion boundary.

Every hand handled by the core is a fixed-shape ``HandFrame`` of 21 landmarks
expressed in pixel units of the reference frame (640x480 by default, y axis
pointing down). Raw tracker output is validated and converted here, once, so
that classifiers never see malformed or differently scaled input.
"""

import numpy as np
from typing import Optional, List, Tuple, Sequence, Any, Iterator, NamedTuple
from dataclasses import dataclass

from ..exceptions import MalformedFrameError
from ..utils.logger import Logger


NUM_LANDMARKS = 21
MAX_HANDS = 2


class LandmarkIndex:
    """MediaPipe hand landmark indices."""

    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


FINGERTIPS = (
    LandmarkIndex.THUMB_TIP,
    LandmarkIndex.INDEX_TIP,
    LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP,
    LandmarkIndex.PINKY_TIP,
)

KNUCKLES = (
    LandmarkIndex.INDEX_MCP,
    LandmarkIndex.MIDDLE_MCP,
    LandmarkIndex.RING_MCP,
    LandmarkIndex.PINKY_MCP,
)


class Point3(NamedTuple):
    """A single landmark coordinate."""
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True, eq=False)
class HandFrame:
    """One observed hand: exactly 21 landmarks as a ``(21, 3)`` float array."""
    points: np.ndarray
    handedness: str = "unknown"

    def __post_init__(self):
        points = np.array(self.points, dtype=np.float64)
        if points.shape != (NUM_LANDMARKS, 3):
            raise MalformedFrameError(
                f"Expected {NUM_LANDMARKS} landmarks with 3 coordinates, got shape {points.shape}"
            )
        if not np.all(np.isfinite(points)):
            raise MalformedFrameError("Landmark coordinates must be finite")
        points.setflags(write=False)
        object.__setattr__(self, 'points', points)

    @classmethod
    def from_points(
        cls,
        points: Sequence[Any],
        scale: Tuple[float, float, float] = (1.0, 1.0, 1.0),
        handedness: str = "unknown"
    ) -> "HandFrame":
        """
        Build a hand from raw landmark points.

        Args:
            points: 21 points, each an ``(x, y)`` / ``(x, y, z)`` sequence or an
                object exposing ``x``, ``y`` and optionally ``z`` attributes
            scale: Per-axis factors converting the input into pixel units
            handedness: Optional handedness label

        Returns:
            HandFrame in pixel units

        Raises:
            MalformedFrameError: If the landmark count or a point is invalid
        """
        # MediaPipe NormalizedLandmarkList keeps its points under .landmark
        if hasattr(points, 'landmark'):
            points = points.landmark

        try:
            coords = [_coerce_point(point) for point in points]
        except TypeError as e:
            raise MalformedFrameError(f"Hand landmarks must be a sequence of points: {e}")
        if len(coords) != NUM_LANDMARKS:
            raise MalformedFrameError(
                f"Expected {NUM_LANDMARKS} landmarks per hand, got {len(coords)}"
            )

        array = np.array(coords, dtype=np.float64) * np.asarray(scale, dtype=np.float64)
        return cls(points=array, handedness=handedness)

    def point(self, index: int) -> Point3:
        """Get a landmark by index."""
        x, y, z = self.points[index]
        return Point3(float(x), float(y), float(z))

    @property
    def wrist(self) -> Point3:
        return self.point(LandmarkIndex.WRIST)

    def translated(self, offset: Sequence[float]) -> "HandFrame":
        """Return a copy shifted by a constant ``(dx, dy[, dz])`` offset."""
        delta = np.zeros(3)
        delta[:len(offset)] = offset
        return HandFrame(points=self.points + delta, handedness=self.handedness)

    def allclose(self, other: "HandFrame", atol: float = 1e-9) -> bool:
        """Check whether two hands have the same landmarks within tolerance."""
        return bool(np.allclose(self.points, other.points, atol=atol))

    def to_list(self) -> List[List[float]]:
        """Convert landmarks to nested lists for serialization."""
        return self.points.tolist()

    def __len__(self) -> int:
        return NUM_LANDMARKS

    def __iter__(self) -> Iterator[Point3]:
        for index in range(NUM_LANDMARKS):
            yield self.point(index)


@dataclass(frozen=True, eq=False)
class MultiHandFrame:
    """Zero, one or two hands observed in the same video frame."""
    hands: Tuple[HandFrame, ...] = ()
    observed_at: Optional[float] = None

    def __post_init__(self):
        hands = tuple(self.hands)
        if len(hands) > MAX_HANDS:
            raise MalformedFrameError(f"At most {MAX_HANDS} hands per frame, got {len(hands)}")
        object.__setattr__(self, 'hands', hands)

    @classmethod
    def from_raw(
        cls,
        raw_hands: Sequence[Any],
        coordinate_space: str = "normalized",
        frame_size: Tuple[int, int] = (640, 480),
        observed_at: Optional[float] = None,
        handedness: Optional[Sequence[str]] = None
    ) -> "MultiHandFrame":
        """
        Validate raw per-hand landmark lists and convert them to pixel units.

        Args:
            raw_hands: Sequence of per-hand landmark sequences (or HandFrames,
                which are taken as already being in pixel units)
            coordinate_space: "normalized" for 0-1 coordinates, "pixel" otherwise
            frame_size: Reference frame (width, height) used for normalized input
            observed_at: Capture timestamp in seconds
            handedness: Optional handedness labels, one per hand

        Raises:
            MalformedFrameError: If any hand is malformed or there are too many hands
        """
        scale = coordinate_scale(coordinate_space, frame_size)
        try:
            raw_hands = [] if raw_hands is None else list(raw_hands)
        except TypeError as e:
            raise MalformedFrameError(f"Hands must be a sequence of landmark lists: {e}")
        if len(raw_hands) > MAX_HANDS:
            raise MalformedFrameError(f"At most {MAX_HANDS} hands per frame, got {len(raw_hands)}")

        hands = []
        for idx, raw in enumerate(raw_hands):
            if isinstance(raw, HandFrame):
                hands.append(raw)
                continue
            label = handedness[idx] if handedness is not None and idx < len(handedness) else "unknown"
            hands.append(HandFrame.from_points(raw, scale=scale, handedness=label))

        return cls(hands=tuple(hands), observed_at=observed_at)

    @property
    def hand_count(self) -> int:
        return len(self.hands)

    @property
    def is_empty(self) -> bool:
        return not self.hands

    def to_list(self) -> List[List[List[float]]]:
        """Convert all hands to nested lists for serialization."""
        return [hand.to_list() for hand in self.hands]

    def __len__(self) -> int:
        return len(self.hands)

    def __iter__(self) -> Iterator[HandFrame]:
        return iter(self.hands)


def coordinate_scale(coordinate_space: str, frame_size: Tuple[int, int]) -> Tuple[float, float, float]:
    """
    Per-axis factors converting input coordinates into pixel units.

    Normalized depth is scaled by the frame width, matching MediaPipe's
    convention that z shares the magnitude of x.
    """
    if coordinate_space == "pixel":
        return (1.0, 1.0, 1.0)
    if coordinate_space == "normalized":
        width, height = frame_size
        return (float(width), float(height), float(width))
    raise ValueError(f"Unknown coordinate space: {coordinate_space}")


def _coerce_point(point: Any) -> Tuple[float, float, float]:
    """Convert one raw landmark into an ``(x, y, z)`` tuple, z defaulting to 0."""
    try:
        if hasattr(point, 'x') and hasattr(point, 'y'):
            z = getattr(point, 'z', 0.0)
            return (float(point.x), float(point.y), float(z or 0.0))

        values = [float(v) for v in point]
    except (TypeError, ValueError) as e:
        raise MalformedFrameError(f"Invalid landmark point {point!r}: {e}")

    if len(values) == 2:
        return (values[0], values[1], 0.0)
    if len(values) == 3:
        return (values[0], values[1], values[2])
    raise MalformedFrameError(f"Landmark points need 2 or 3 coordinates, got {len(values)}")


class LandmarkIngestor:
    """Converts tracker output into validated ``MultiHandFrame`` objects."""

    def __init__(
        self,
        coordinate_space: str = "normalized",
        frame_size: Tuple[int, int] = (640, 480),
        logger: Optional[Logger] = None
    ):
        """
        Initialize the ingestor.

        Args:
            coordinate_space: "normalized" (0-1 coordinates) or "pixel"
            frame_size: Reference frame (width, height) in pixels
            logger: Logger instance
        """
        # Fail on an unknown coordinate space at construction, not per frame
        coordinate_scale(coordinate_space, frame_size)

        self.coordinate_space = coordinate_space
        self.frame_size = tuple(frame_size)
        self.logger = logger or Logger("landmark_ingestor")
        self.rejected_frames = 0

    def ingest(
        self,
        raw_hands: Any,
        observed_at: Optional[float] = None,
        handedness: Optional[Sequence[str]] = None
    ) -> Optional[MultiHandFrame]:
        """
        Validate one frame of tracker output.

        Args:
            raw_hands: A MultiHandFrame, or a sequence of per-hand landmark lists
            observed_at: Capture timestamp in seconds
            handedness: Optional handedness labels

        Returns:
            MultiHandFrame, or None when the frame is malformed
        """
        if isinstance(raw_hands, MultiHandFrame):
            if observed_at is not None and raw_hands.observed_at is None:
                return MultiHandFrame(hands=raw_hands.hands, observed_at=observed_at)
            return raw_hands

        try:
            return MultiHandFrame.from_raw(
                raw_hands,
                coordinate_space=self.coordinate_space,
                frame_size=self.frame_size,
                observed_at=observed_at,
                handedness=handedness
            )
        except MalformedFrameError as e:
            self.rejected_frames += 1
            self.logger.debug(f"Skipping malformed frame: {e}")
            return None

    def ingest_mediapipe(self, results: Any, observed_at: Optional[float] = None) -> Optional[MultiHandFrame]:
        """
        Convert a MediaPipe Hands result object.

        Args:
            results: Object exposing ``multi_hand_landmarks`` and optionally
                ``multi_handedness``, as returned by ``Hands.process``

        Returns:
            MultiHandFrame (empty when no hands were found), or None when malformed
        """
        hand_landmarks = getattr(results, 'multi_hand_landmarks', None) or []

        handedness = []
        multi_handedness = getattr(results, 'multi_handedness', None) or []
        for idx in range(len(hand_landmarks)):
            if idx < len(multi_handedness):
                handedness.append(multi_handedness[idx].classification[0].label)
            else:
                handedness.append("unknown")

        return self.ingest(list(hand_landmarks), observed_at=observed_at, handedness=handedness)
