"""
Publication of finalized detections.
"""

from typing import Callable, Optional

from .voter import CooldownTable, DetectionResult
from ..utils.logger import Logger


DetectionSink = Callable[[DetectionResult], None]


class DetectionEmitter:
    """Publishes detections to a single sink and stamps the cooldown table."""

    def __init__(
        self,
        sink: DetectionSink,
        cooldowns: CooldownTable,
        logger: Optional[Logger] = None
    ):
        """
        Initialize the emitter.

        Args:
            sink: The one consumer receiving every detection
            cooldowns: Cooldown table owned by the session's voter
            logger: Logger instance
        """
        if not callable(sink):
            raise TypeError("Detection sink must be callable")

        self.sink = sink
        self.cooldowns = cooldowns
        self.logger = logger or Logger("detection_emitter")
        self.emitted = 0
        self.failed = 0

    def record(self, result: DetectionResult) -> None:
        """
        Stamp the cooldown table for a finalized result.

        Runs together with the vote, under the caller's state lock, so the
        label is rate-limited before any consumer sees it.
        """
        self.cooldowns.record(result.label, result.observed_at)
        self.logger.log_detection(result.label, result.confidence, result.votes, result.source)

    def publish(self, result: DetectionResult) -> bool:
        """
        Hand a recorded result to the sink.

        Must be called without holding session state locks: the sink is free
        to call back into the session. Sink errors are logged, not raised.

        Returns:
            True if the sink accepted the result
        """
        try:
            self.sink(result)
        except Exception as e:
            self.failed += 1
            self.logger.error(f"Detection sink failed for '{result.label}': {e}")
            return False

        self.emitted += 1
        return True

    def emit(self, result: DetectionResult) -> bool:
        """Record the emission and publish it in one step."""
        self.record(result)
        return self.publish(result)
