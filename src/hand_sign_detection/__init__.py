"""
Hand Sign Detection

Recognizes discrete hand signs from a stream of per-frame hand landmarks and
emits debounced, confidence-scored detection events.
"""

__version__ = "1.0.0"

from .core import (
    DetectionSession,
    DetectionResult,
    HandFrame,
    MultiHandFrame,
    RuleBasedClassifier,
    TemplateMatcher,
    TemporalVoter,
)
from .data import GestureTemplate, InMemoryTemplateStore, JsonTemplateStore, TemplateRecorder
from .exceptions import SignDetectionError, MalformedFrameError, NoTemplatesError, ConfigError
from .utils import ConfigManager, Logger, PerformanceMonitor

__all__ = [
    "DetectionSession",
    "DetectionResult",
    "HandFrame",
    "MultiHandFrame",
    "RuleBasedClassifier",
    "TemplateMatcher",
    "TemporalVoter",
    "GestureTemplate",
    "InMemoryTemplateStore",
    "JsonTemplateStore",
    "TemplateRecorder",
    "SignDetectionError",
    "MalformedFrameError",
    "NoTemplatesError",
    "ConfigError",
    "ConfigManager",
    "Logger",
    "PerformanceMonitor",
]
