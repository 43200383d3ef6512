"""
Similarity matching of live frames against stored gesture templates.
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass

from .landmarks import MultiHandFrame
from .normalizer import Normalizer
from ..utils.logger import Logger


DEFAULT_DISTANCE_SCALE = 50.0
DEFAULT_ACCEPTANCE_THRESHOLD = 0.72


@dataclass
class TemplateMatch:
    """Best-frame comparison of a live frame against one template."""
    name: str
    similarity: float
    distance: float
    confidence: float
    template_id: Optional[str] = None


class TemplateMatcher:
    """
    Matches wrist-normalized frames against templates by mean landmark distance.

    For every stored frame the per-landmark Euclidean distances to the live
    frame are averaged; a template's distance is the smallest over its stored
    frames. Distances become similarities through
    ``max(0, 1 - distance / distance_scale)``.
    """

    def __init__(
        self,
        distance_scale: float = DEFAULT_DISTANCE_SCALE,
        acceptance_threshold: float = DEFAULT_ACCEPTANCE_THRESHOLD,
        normalizer: Optional[Normalizer] = None,
        logger: Optional[Logger] = None
    ):
        """
        Initialize the matcher.

        Args:
            distance_scale: Distance (px) at which similarity drops to zero
            acceptance_threshold: Minimum similarity for a match
            normalizer: Normalizer shared with the live path
            logger: Logger instance
        """
        if distance_scale <= 0:
            raise ValueError("distance_scale must be positive")

        self.distance_scale = distance_scale
        self.acceptance_threshold = acceptance_threshold
        self.normalizer = normalizer or Normalizer()
        self.logger = logger or Logger("template_matcher")

        # (template, normalized stored frames as (hands, 21, 3) arrays)
        self._prepared: List[Tuple[object, List[np.ndarray]]] = []

    def load(self, templates: Sequence) -> int:
        """
        Normalize and cache a snapshot of templates.

        Templates without usable frames are skipped.

        Returns:
            Number of templates available for matching
        """
        prepared = []
        for template in templates:
            arrays = [
                self._as_array(self.normalizer.frame(frame))
                for frame in template.frames
                if not frame.is_empty
            ]
            if not arrays:
                self.logger.warning(f"Template '{template.name}' has no frames with hands, skipping")
                continue
            prepared.append((template, arrays))

        self._prepared = prepared
        self.logger.debug(f"Loaded {len(prepared)} templates for matching")
        return len(prepared)

    def clear(self) -> None:
        self._prepared = []

    @property
    def template_count(self) -> int:
        return len(self._prepared)

    def similarity(self, distance: float) -> float:
        return max(0.0, 1.0 - distance / self.distance_scale)

    def score(self, frame: MultiHandFrame) -> List[TemplateMatch]:
        """
        Compare a frame against every loaded template.

        Templates with no stored frame of compatible shape are left out.
        """
        if frame.is_empty or not self._prepared:
            return []

        live = self._as_array(self.normalizer.frame(frame))
        matches = []

        for template, stored_frames in self._prepared:
            distances = [
                d for d in (self._frame_distance(live, stored) for stored in stored_frames)
                if d is not None
            ]
            if not distances:
                continue

            distance = min(distances)
            similarity = self.similarity(distance)
            matches.append(TemplateMatch(
                name=template.name,
                similarity=similarity,
                distance=distance,
                confidence=similarity * template.baseline_confidence,
                template_id=template.template_id,
            ))

        return matches

    def match(self, frame: MultiHandFrame) -> Optional[TemplateMatch]:
        """
        Find the most similar template.

        Returns:
            The best match if its similarity exceeds the acceptance threshold
        """
        matches = self.score(frame)
        if not matches:
            return None

        best = max(matches, key=lambda m: m.similarity)
        if best.similarity <= self.acceptance_threshold:
            return None
        return best

    @staticmethod
    def _frame_distance(live: np.ndarray, stored: np.ndarray) -> Optional[float]:
        """Mean per-landmark distance, or None when hand or landmark counts differ."""
        if live.shape != stored.shape:
            return None
        return float(np.linalg.norm(live - stored, axis=-1).mean())

    @staticmethod
    def _as_array(frame: MultiHandFrame) -> np.ndarray:
        return np.stack([hand.points for hand in frame.hands])
