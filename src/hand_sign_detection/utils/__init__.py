"""
Utility modules for the hand sign detection system.
"""

from .config import ConfigManager
from .logger import Logger
from .monitoring import PerformanceMonitor

__all__ = [
    "ConfigManager",
    "Logger",
    "PerformanceMonitor",
]
