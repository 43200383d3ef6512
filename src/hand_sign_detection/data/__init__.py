"""
Gesture template storage and recording.
"""

from .templates import (
    GestureTemplate,
    TemplateStore,
    InMemoryTemplateStore,
    JsonTemplateStore,
    TemplateRecorder,
)

__all__ = [
    "GestureTemplate",
    "TemplateStore",
    "InMemoryTemplateStore",
    "JsonTemplateStore",
    "TemplateRecorder",
]
