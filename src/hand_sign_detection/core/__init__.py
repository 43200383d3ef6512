"""
Core modules for hand sign detection.
"""

from .landmarks import HandFrame, MultiHandFrame, LandmarkIndex, LandmarkIngestor, Point3
from .normalizer import Normalizer, normalize_hand, normalize_pair
from .rule_classifier import RuleBasedClassifier, RuleScore
from .template_matcher import TemplateMatcher, TemplateMatch
from .voter import TemporalVoter, ClassificationSample, DetectionResult, VoterState
from .emitter import DetectionEmitter
from .detector import DetectionSession, DetectionStats

__all__ = [
    "HandFrame",
    "MultiHandFrame",
    "LandmarkIndex",
    "LandmarkIngestor",
    "Point3",
    "Normalizer",
    "normalize_hand",
    "normalize_pair",
    "RuleBasedClassifier",
    "RuleScore",
    "TemplateMatcher",
    "TemplateMatch",
    "TemporalVoter",
    "ClassificationSample",
    "DetectionResult",
    "VoterState",
    "DetectionEmitter",
    "DetectionSession",
    "DetectionStats",
]
