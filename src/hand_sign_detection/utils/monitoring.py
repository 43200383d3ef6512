"""
Frame processing performance monitoring.
"""

import time
import psutil
import numpy as np
from typing import Dict, Any, List
from dataclasses import dataclass
from collections import deque


@dataclass
class PerformanceMetrics:
    """Container for frame processing metrics."""
    fps: float
    frame_time_ms: float
    over_budget: bool


class PerformanceMonitor:
    """Tracks per-frame processing time against a latency budget."""

    def __init__(self, window_size: int = 100, frame_budget_ms: float = 15.0):
        """
        Initialize the performance monitor.

        Args:
            window_size: Size of the sliding window for metrics
            frame_budget_ms: Processing time a single frame should stay under
        """
        self.window_size = window_size
        self.frame_budget_ms = frame_budget_ms

        self.frame_time_history = deque(maxlen=window_size)
        self.arrival_history = deque(maxlen=window_size)

        self.frame_count = 0
        self.over_budget_count = 0
        self.start_time = time.time()

    def record_frame(self, processing_seconds: float) -> PerformanceMetrics:
        """
        Record the processing time of one frame.

        Args:
            processing_seconds: Time spent in the detection pipeline

        Returns:
            Metrics for this frame
        """
        now = time.time()
        frame_time_ms = processing_seconds * 1000.0

        self.frame_time_history.append(frame_time_ms)
        self.arrival_history.append(now)
        self.frame_count += 1

        over_budget = frame_time_ms > self.frame_budget_ms
        if over_budget:
            self.over_budget_count += 1

        return PerformanceMetrics(
            fps=self._current_fps(),
            frame_time_ms=frame_time_ms,
            over_budget=over_budget
        )

    def _current_fps(self) -> float:
        """Frame arrival rate over the sliding window."""
        if len(self.arrival_history) < 2:
            return 0.0
        span = self.arrival_history[-1] - self.arrival_history[0]
        return (len(self.arrival_history) - 1) / span if span > 0 else 0.0

    def average_frame_time_ms(self) -> float:
        return float(np.mean(self.frame_time_history)) if self.frame_time_history else 0.0

    def peak_frame_time_ms(self) -> float:
        return float(np.max(self.frame_time_history)) if self.frame_time_history else 0.0

    def get_performance_summary(self, include_system: bool = True) -> Dict[str, Any]:
        """Get a summary of frame timing, optionally with process CPU/memory usage."""
        summary = {
            'frame_time_ms': {
                'average': self.average_frame_time_ms(),
                'peak': self.peak_frame_time_ms(),
                'budget': self.frame_budget_ms,
            },
            'statistics': {
                'fps': self._current_fps(),
                'total_frames': self.frame_count,
                'over_budget_frames': self.over_budget_count,
                'monitoring_duration': time.time() - self.start_time,
                'window_size': self.window_size,
            }
        }

        if include_system:
            process = psutil.Process()
            summary['system'] = {
                'cpu_usage': psutil.cpu_percent(interval=None),
                'memory_usage_mb': process.memory_info().rss / 1024 / 1024,
            }

        return summary

    def reset_metrics(self) -> None:
        """Reset all performance metrics."""
        self.frame_time_history.clear()
        self.arrival_history.clear()

        self.frame_count = 0
        self.over_budget_count = 0
        self.start_time = time.time()

    def get_performance_warnings(self) -> List[str]:
        """Get performance warnings based on recent frame times."""
        warnings = []

        if not self.frame_time_history:
            return warnings

        recent = list(self.frame_time_history)[-10:]
        if np.mean(recent) > self.frame_budget_ms:
            warnings.append(
                f"Frame processing over budget: {np.mean(recent):.2f}ms > {self.frame_budget_ms:.1f}ms"
            )

        frame_times = list(self.frame_time_history)[-20:]
        if len(frame_times) > 5 and np.std(frame_times) > self.frame_budget_ms / 2:
            warnings.append(f"Inconsistent frame times: std={np.std(frame_times):.2f}ms")

        return warnings
