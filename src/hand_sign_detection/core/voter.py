"""
Temporal voting and cooldown for per-frame classifications.
"""

import time
from collections import Counter, deque
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional, Tuple
from dataclasses import dataclass, asdict

from ..utils.logger import Logger


class VoterState(Enum):
    """Voter lifecycle states."""
    IDLE = "idle"
    SAMPLING = "sampling"


@dataclass
class ClassificationSample:
    """One frame's accepted classification."""
    label: str
    confidence: float
    observed_at: float
    source: str = "rules"


@dataclass
class DetectionResult:
    """A debounced detection published to consumers."""
    label: str
    confidence: float
    observed_at: float
    source: str = "rules"
    votes: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


class VotingWindow:
    """Bounded FIFO of the most recent classification samples."""

    def __init__(self, size: int):
        if size < 1:
            raise ValueError("Voting window size must be at least 1")
        self.size = size
        self._samples: Deque[ClassificationSample] = deque(maxlen=size)

    def push(self, sample: ClassificationSample) -> None:
        self._samples.append(sample)

    def clear(self) -> None:
        self._samples.clear()

    @property
    def samples(self) -> List[ClassificationSample]:
        return list(self._samples)

    def leader(self) -> Optional[Tuple[str, List[ClassificationSample]]]:
        """
        Most frequent label in the window and its supporting samples.

        Ties go to the label seen most recently.
        """
        if not self._samples:
            return None

        counts = Counter(sample.label for sample in self._samples)
        best_count = max(counts.values())
        for sample in reversed(self._samples):
            if counts[sample.label] == best_count:
                label = sample.label
                break

        return label, [s for s in self._samples if s.label == label]

    def __len__(self) -> int:
        return len(self._samples)


class CooldownTable:
    """Last emission time per label, plus the last emitted label."""

    def __init__(self, cooldown_ms: float):
        self.cooldown_ms = cooldown_ms
        self._last_emission: Dict[str, float] = {}
        self.last_label: Optional[str] = None

    def allows(self, label: str, now: float) -> bool:
        """
        Check whether a label may be emitted at ``now`` (seconds).

        A label is allowed when it differs from the last emitted label or its
        own cooldown has elapsed.
        """
        if label != self.last_label:
            return True
        last = self._last_emission.get(label)
        if last is None:
            return True
        return (now - last) * 1000.0 >= self.cooldown_ms

    def record(self, label: str, at: float) -> None:
        self._last_emission[label] = at
        self.last_label = label

    def last_emission(self, label: str) -> Optional[float]:
        return self._last_emission.get(label)

    def clear(self) -> None:
        self._last_emission.clear()
        self.last_label = None


class TemporalVoter:
    """
    Debounces per-frame classifications into detection results.

    The voter is ``IDLE`` until started. While ``SAMPLING`` it accumulates
    samples; once the leading label reaches ``min_votes`` inside the window
    a result is finalized (if the cooldown allows) and the window is cleared.
    """

    def __init__(
        self,
        window_size: int = 5,
        min_votes: int = 3,
        cooldown_ms: float = 1500.0,
        auto_reset_empty_frames: Optional[int] = 15,
        retain_on_cooldown: bool = False,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[Logger] = None
    ):
        """
        Initialize the voter.

        Args:
            window_size: Number of recent samples kept (N)
            min_votes: Samples of one label needed to finalize (M, at most N)
            cooldown_ms: Minimum time before the same label may be emitted again
            auto_reset_empty_frames: Consecutive hand-less frames tolerated
                before partial evidence is discarded; None disables the reset
            retain_on_cooldown: Keep the evidence when a vote is blocked by the
                cooldown instead of clearing the window
            clock: Monotonic clock in seconds, used for the session timeout
            logger: Logger instance
        """
        if not 1 <= min_votes <= window_size:
            raise ValueError(f"min_votes must be between 1 and {window_size}, got {min_votes}")

        self.window = VotingWindow(window_size)
        self.min_votes = min_votes
        self.cooldowns = CooldownTable(cooldown_ms)
        self.auto_reset_empty_frames = auto_reset_empty_frames
        self.retain_on_cooldown = retain_on_cooldown
        self.clock = clock
        self.logger = logger or Logger("temporal_voter")

        self.state = VoterState.IDLE
        self.frame_count = 0
        self.empty_streak = 0
        self.blocked_votes = 0
        self._deadline: Optional[float] = None
        self._timeout_ms: Optional[float] = None

    @property
    def is_sampling(self) -> bool:
        return self.state is VoterState.SAMPLING

    def start(self, timeout_ms: Optional[float] = None) -> None:
        """
        Arm the voter with clean state and an optional wall-clock budget.

        Raises:
            ValueError: If ``timeout_ms`` is given but not positive
        """
        if timeout_ms is not None and timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

        self._clear()
        self.cooldowns.clear()
        self.state = VoterState.SAMPLING
        self._timeout_ms = timeout_ms
        self._deadline = self.clock() + timeout_ms / 1000.0 if timeout_ms is not None else None

    def stop(self) -> None:
        """Return to idle, discarding all session state."""
        self._clear()
        self.cooldowns.clear()
        self.state = VoterState.IDLE
        self._deadline = None
        self._timeout_ms = None

    def check_timeout(self) -> bool:
        """
        Stop the voter if its budget has run out.

        Returns:
            True if the session expired on this call
        """
        if self.state is VoterState.SAMPLING and self._deadline is not None:
            if self.clock() >= self._deadline:
                self.logger.info(f"Session timeout after {self._timeout_ms:.0f}ms")
                self.stop()
                return True
        return False

    def time_remaining(self) -> Optional[float]:
        """
        Milliseconds left in the session budget.

        Returns:
            None when sampling without a timeout, 0.0 when idle
        """
        if self.state is not VoterState.SAMPLING:
            return 0.0
        if self._deadline is None:
            return None
        return max(0.0, (self._deadline - self.clock()) * 1000.0)

    def observe_frame(self, hands_present: bool) -> bool:
        """
        Account for one incoming frame.

        Returns:
            True if this frame triggered the empty-frame auto-reset
        """
        if self.state is not VoterState.SAMPLING:
            return False

        if hands_present:
            self.empty_streak = 0
            self.frame_count += 1
            return False

        self.empty_streak += 1
        if (self.auto_reset_empty_frames is not None
                and self.empty_streak == self.auto_reset_empty_frames + 1):
            self.logger.debug(f"No hands for {self.empty_streak} frames, discarding partial evidence")
            self.window.clear()
            self.frame_count = 0
            return True
        return False

    def push(self, sample: ClassificationSample) -> Optional[DetectionResult]:
        """
        Add a sample and run the vote.

        Returns:
            A finalized DetectionResult, or None when nothing is ready or the
            cooldown blocks the winning label
        """
        if self.state is not VoterState.SAMPLING:
            return None

        self.window.push(sample)
        label, supporting = self.window.leader()
        if len(supporting) < self.min_votes:
            return None

        if not self.cooldowns.allows(label, sample.observed_at):
            self.blocked_votes += 1
            self.logger.debug(f"Vote for '{label}' blocked by cooldown")
            if not self.retain_on_cooldown:
                self.window.clear()
            return None

        confidence = sum(s.confidence for s in supporting) / len(supporting)
        result = DetectionResult(
            label=label,
            confidence=confidence,
            observed_at=sample.observed_at,
            source=supporting[-1].source,
            votes=len(supporting),
        )
        self.window.clear()
        return result

    def _clear(self) -> None:
        self.window.clear()
        self.frame_count = 0
        self.empty_streak = 0
