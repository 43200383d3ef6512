"""
Detection session: the per-frame hand sign recognition pipeline.
"""

import time
import itertools
import threading
from typing import Any, Dict, Optional, Sequence
from dataclasses import dataclass, field

from .landmarks import LandmarkIngestor, MultiHandFrame
from .normalizer import Normalizer
from .rule_classifier import RuleBasedClassifier
from .template_matcher import TemplateMatcher
from .voter import TemporalVoter, ClassificationSample, DetectionResult
from .emitter import DetectionEmitter, DetectionSink
from ..exceptions import NoTemplatesError
from ..utils.config import ConfigManager
from ..utils.logger import Logger
from ..utils.monitoring import PerformanceMonitor


_session_ids = itertools.count(1)


@dataclass
class DetectionStats:
    """Container for session statistics."""
    total_frames: int = 0
    frames_with_hands: int = 0
    empty_frames: int = 0
    skipped_frames: int = 0
    samples: int = 0
    detections: int = 0
    blocked_votes: int = 0
    auto_resets: int = 0
    label_counts: Dict[str, int] = field(default_factory=dict)


class DetectionSession:
    """
    Runs normalization, classification, voting and emission once per frame.

    The session owns all mutable recognition state (voting window, cooldown
    table, counters). A single lock serializes frame processing and session
    control, so frames from different threads can never interleave.
    """

    def __init__(
        self,
        sink: DetectionSink,
        template_store: Optional[Any] = None,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[Logger] = None,
        clock=time.monotonic
    ):
        """
        Initialize the detection session.

        Args:
            sink: Callable receiving every emitted DetectionResult
            template_store: Object exposing ``load_templates()``; optional
            config: Configuration overrides merged over the packaged defaults
            logger: Logger instance
            clock: Monotonic clock in seconds for timestamps and the timeout
        """
        self.config = ConfigManager().build_detection_config(config)
        self.session_id = next(_session_ids)
        # Each session owns its logger name
        self.logger = logger or Logger.from_config(f"sign_detector.{self.session_id}", self.config['logging'])
        self.template_store = template_store
        self.clock = clock

        input_cfg = self.config['input']
        rules_cfg = self.config['rules']
        templates_cfg = self.config['templates']
        voting_cfg = self.config['voting']
        session_cfg = self.config['session']
        monitoring_cfg = self.config['monitoring']

        # Initialize components
        self.ingestor = LandmarkIngestor(
            coordinate_space=input_cfg['coordinate_space'],
            frame_size=(input_cfg['frame_width'], input_cfg['frame_height']),
            logger=self.logger
        )
        self.normalizer = Normalizer(align_rotation=self.config['normalization']['align_rotation'])
        self.rules = RuleBasedClassifier(
            acceptance=rules_cfg['acceptance'],
            priority=rules_cfg['priority'],
            normalizer=self.normalizer,
            logger=self.logger
        )
        self.matcher = TemplateMatcher(
            distance_scale=templates_cfg['distance_scale'],
            acceptance_threshold=templates_cfg['acceptance_threshold'],
            normalizer=self.normalizer,
            logger=self.logger
        )
        self.voter = TemporalVoter(
            window_size=voting_cfg['window_size'],
            min_votes=voting_cfg['min_votes'],
            cooldown_ms=voting_cfg['cooldown_ms'],
            auto_reset_empty_frames=session_cfg['auto_reset_empty_frames'],
            retain_on_cooldown=voting_cfg['retain_on_cooldown'],
            clock=clock,
            logger=self.logger
        )
        self.emitter = DetectionEmitter(sink, self.voter.cooldowns, logger=self.logger)

        self.monitor = None
        if monitoring_cfg['enabled']:
            self.monitor = PerformanceMonitor(
                window_size=monitoring_cfg['window_size'],
                frame_budget_ms=monitoring_cfg['frame_budget_ms']
            )

        self.rules_enabled = rules_cfg['enabled']
        self.templates_enabled = templates_cfg['enabled']
        self.templates_required = templates_cfg['required']
        self.classification_order = list(self.config['classification']['order'])

        self.stats = DetectionStats()
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self.voter.is_sampling

    def start(self, timeout_ms: Optional[float] = None) -> int:
        """
        Start (or restart) a detection session with clean state.

        Args:
            timeout_ms: Wall-clock budget for the session; defaults to
                ``session.timeout_ms`` from the configuration

        Returns:
            Number of templates loaded for matching

        Raises:
            NoTemplatesError: If templates are required but none are available
            ValueError: If timeout_ms is not positive
        """
        with self._lock:
            self.voter.stop()
            template_count = self._load_templates()

            if timeout_ms is None:
                timeout_ms = self.config['session']['timeout_ms']

            self.voter.start(timeout_ms)
            self.stats = DetectionStats()
            if self.monitor:
                self.monitor.reset_metrics()

            self.logger.log_session_start(timeout_ms, template_count)
            return template_count

    def stop(self) -> None:
        """Stop the session and synchronously clear its state."""
        with self._lock:
            if not self.voter.is_sampling:
                return
            self._finish("stopped")

    def time_remaining(self) -> Optional[float]:
        """
        Milliseconds left before the session times out.

        Returns:
            None when running without a timeout, 0.0 when idle or expired
        """
        with self._lock:
            if self.voter.check_timeout():
                self._finish("timeout", voter_stopped=True)
            return self.voter.time_remaining()

    def process_frame(
        self,
        hands: Any,
        observed_at: Optional[float] = None,
        handedness: Optional[Sequence[str]] = None
    ) -> Optional[DetectionResult]:
        """
        Process one frame of hand landmarks.

        Args:
            hands: A MultiHandFrame or a sequence of per-hand landmark lists
                (0-2 hands, 21 points each)
            observed_at: Capture timestamp in seconds; defaults to the session clock
            handedness: Optional handedness labels, one per hand

        Returns:
            The DetectionResult emitted for this frame, if any
        """
        with self._lock:
            if not self.voter.is_sampling:
                return None

            if self.voter.check_timeout():
                self._finish("timeout", voter_stopped=True)
                return None

            start_time = time.perf_counter()
            try:
                result = self._process(hands, observed_at, handedness)
            finally:
                self._record_timing(start_time)

        # The sink may call back into the session, so it runs outside the lock
        if result is not None:
            self.emitter.publish(result)
        return result

    def _process(
        self,
        hands: Any,
        observed_at: Optional[float],
        handedness: Optional[Sequence[str]]
    ) -> Optional[DetectionResult]:
        frame = self.ingestor.ingest(hands, observed_at=observed_at, handedness=handedness)
        if frame is None:
            self.stats.skipped_frames += 1
            return None

        self.stats.total_frames += 1

        if frame.is_empty:
            self.stats.empty_frames += 1
            if self.voter.observe_frame(hands_present=False):
                self.stats.auto_resets += 1
            return None

        self.voter.observe_frame(hands_present=True)
        self.stats.frames_with_hands += 1

        now = frame.observed_at if frame.observed_at is not None else self.clock()
        sample = self._classify(frame, now)
        if sample is None:
            return None

        self.stats.samples += 1
        result = self.voter.push(sample)
        self.stats.blocked_votes = self.voter.blocked_votes
        if result is None:
            return None

        self.emitter.record(result)
        self.stats.detections += 1
        self.stats.label_counts[result.label] = self.stats.label_counts.get(result.label, 0) + 1
        return result

    def _classify(self, frame: MultiHandFrame, now: float) -> Optional[ClassificationSample]:
        """Run the classification sources in configured order; first accepted label wins."""
        for source in self.classification_order:
            if source == "rules" and self.rules_enabled:
                score = self.rules.classify(frame)
                if score is not None:
                    return ClassificationSample(score.label, score.confidence, now, "rules")

            elif source == "templates" and self.templates_enabled and self.matcher.template_count:
                match = self.matcher.match(frame)
                if match is not None:
                    return ClassificationSample(match.name, match.confidence, now, "templates")

        return None

    def _load_templates(self) -> int:
        """Take the template snapshot for this session."""
        self.matcher.clear()
        if not self.templates_enabled:
            return 0

        templates = []
        if self.template_store is not None:
            try:
                templates = self.template_store.load_templates()
            except Exception as e:
                self.logger.warning(f"Template store unavailable, matching disabled: {e}")
                templates = []

        count = self.matcher.load(templates)

        if count == 0:
            if self.templates_required:
                raise NoTemplatesError()
            self.logger.warning("No gesture templates available, using rule-based detection only")

        return count

    def _finish(self, reason: str, voter_stopped: bool = False) -> None:
        if not voter_stopped:
            self.voter.stop()
        self.matcher.clear()

        if self.monitor and self.monitor.frame_count:
            self.logger.log_frame_stats(
                self.monitor.average_frame_time_ms(),
                self.monitor.peak_frame_time_ms(),
                self.monitor.frame_count
            )
        self.logger.log_session_stop(reason, self.stats.total_frames, self.stats.detections)

    def _record_timing(self, start_time: float) -> None:
        if self.monitor is None:
            return
        metrics = self.monitor.record_frame(time.perf_counter() - start_time)
        if metrics.over_budget:
            self.logger.debug(
                f"Frame took {metrics.frame_time_ms:.2f}ms "
                f"(budget {self.monitor.frame_budget_ms:.1f}ms)"
            )

    def get_detection_stats(self) -> DetectionStats:
        """Get current session statistics."""
        return self.stats

    def get_performance_metrics(self) -> Dict[str, float]:
        """Get frame processing metrics."""
        frames = max(self.stats.total_frames, 1)
        metrics = {
            'total_frames': self.stats.total_frames,
            'detections': self.stats.detections,
            'hand_rate': self.stats.frames_with_hands / frames,
            'sample_rate': self.stats.samples / frames,
        }
        if self.monitor:
            metrics['avg_frame_time_ms'] = self.monitor.average_frame_time_ms()
            metrics['peak_frame_time_ms'] = self.monitor.peak_frame_time_ms()
        return metrics
