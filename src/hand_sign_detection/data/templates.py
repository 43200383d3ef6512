"""
Gesture templates and the stores that provide them.

The detection core only ever reads templates, through ``load_templates()``,
once per session start. Stores here are thin adapters; persistent storage
proper belongs to the host application.
"""

import json
import time
import hashlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Dict, Any, Optional, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from ..core.landmarks import HandFrame, MultiHandFrame
from ..exceptions import MalformedFrameError
from ..utils.logger import Logger


@dataclass(frozen=True)
class GestureTemplate:
    """A stored reference gesture made of one or more frames."""
    name: str
    frames: Sequence[MultiHandFrame]
    description: str = ""
    baseline_confidence: float = 1.0
    template_id: Optional[str] = None
    created_at: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'frames', tuple(self.frames))

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary (landmarks in pixel units)."""
        return {
            'template_id': self.template_id,
            'name': self.name,
            'description': self.description,
            'baseline_confidence': self.baseline_confidence,
            'created_at': self.created_at,
            'frames': [frame.to_list() for frame in self.frames],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GestureTemplate":
        """
        Deserialize a template.

        Raises:
            MalformedFrameError: If a stored hand does not have 21 landmarks
            KeyError: If the name is missing
        """
        frames = []
        for raw_frame in data.get('frames', []):
            hands = tuple(HandFrame.from_points(hand) for hand in raw_frame)
            frames.append(MultiHandFrame(hands=hands))

        return cls(
            name=data['name'],
            frames=frames,
            description=data.get('description', ""),
            baseline_confidence=float(data.get('baseline_confidence', 1.0)),
            template_id=data.get('template_id'),
            created_at=data.get('created_at'),
        )


class TemplateStore(ABC):
    """Read/write access to gesture templates."""

    @abstractmethod
    def load_templates(self) -> List[GestureTemplate]:
        """Return a point-in-time snapshot of all templates."""

    @abstractmethod
    def add_template(self, template: GestureTemplate) -> GestureTemplate:
        """Store a template and return it with its id and creation time set."""

    @abstractmethod
    def delete_template(self, template_id: str) -> bool:
        """Delete a template; True when something was removed."""

    def get_template_by_name(self, name: str) -> Optional[GestureTemplate]:
        """Get the first template with the given name."""
        for template in self.load_templates():
            if template.name == name:
                return template
        return None

    @staticmethod
    def _stamp(template: GestureTemplate) -> GestureTemplate:
        """Assign an id and creation time to a new template."""
        created_at = datetime.now().isoformat()
        content = f"{template.name}_{created_at}_{time.perf_counter_ns()}"
        template_id = hashlib.md5(content.encode()).hexdigest()[:12]
        return replace(template, template_id=template_id, created_at=created_at)


class InMemoryTemplateStore(TemplateStore):
    """Template store kept in process memory."""

    def __init__(self, templates: Optional[Sequence[GestureTemplate]] = None):
        self._templates: Dict[str, GestureTemplate] = {}
        for template in templates or []:
            self.add_template(template)

    def load_templates(self) -> List[GestureTemplate]:
        return list(self._templates.values())

    def add_template(self, template: GestureTemplate) -> GestureTemplate:
        stored = self._stamp(template)
        self._templates[stored.template_id] = stored
        return stored

    def delete_template(self, template_id: str) -> bool:
        return self._templates.pop(template_id, None) is not None


class JsonTemplateStore(TemplateStore):
    """Template store keeping one JSON file per template in a directory."""

    def __init__(self, base_path: str = "data/templates", logger: Optional[Logger] = None):
        """
        Initialize the store.

        Args:
            base_path: Directory holding ``<template_id>.json`` files
            logger: Logger instance
        """
        self.base_path = Path(base_path)
        self.logger = logger or Logger("template_store")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def load_templates(self) -> List[GestureTemplate]:
        """Load every readable template; unreadable files are logged and skipped."""
        templates = []

        for template_file in sorted(self.base_path.glob("*.json")):
            try:
                with open(template_file, 'r') as f:
                    templates.append(GestureTemplate.from_dict(json.load(f)))
            except (OSError, ValueError, KeyError, MalformedFrameError) as e:
                self.logger.error(f"Error loading template {template_file}: {e}")

        return sorted(templates, key=lambda t: t.created_at or "")

    def add_template(self, template: GestureTemplate) -> GestureTemplate:
        stored = self._stamp(template)
        template_file = self.base_path / f"{stored.template_id}.json"

        with open(template_file, 'w') as f:
            json.dump(stored.to_dict(), f, indent=2)

        self.logger.info(
            f"Stored template: {stored.name} (ID: {stored.template_id}, frames: {stored.frame_count})"
        )
        return stored

    def delete_template(self, template_id: str) -> bool:
        template_file = self.base_path / f"{template_id}.json"
        if not template_file.exists():
            self.logger.warning(f"Template not found: {template_id}")
            return False

        template_file.unlink()
        self.logger.info(f"Deleted template: {template_id}")
        return True


class TemplateRecorder:
    """Captures a landmark sequence and turns it into a ``GestureTemplate``."""

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger or Logger("template_recorder")
        self._frames: List[MultiHandFrame] = []
        self.recording = False

    def start(self) -> None:
        """Begin a new recording, discarding any previous capture."""
        self._frames = []
        self.recording = True

    def add_frame(self, frame: MultiHandFrame) -> None:
        """Capture a frame; frames without hands are ignored."""
        if self.recording and not frame.is_empty:
            self._frames.append(frame)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def finish(self, name: str, description: str = "") -> GestureTemplate:
        """
        Stop recording and build the template.

        Raises:
            ValueError: If no frame with hands was captured
        """
        self.recording = False
        if not self._frames:
            raise ValueError("No landmarks were captured during the recording")

        template = GestureTemplate(
            name=name,
            frames=self._frames,
            description=description,
            baseline_confidence=1.0,
        )
        self.logger.info(f"Recorded template '{name}' with {len(self._frames)} frames")
        self._frames = []
        return template
