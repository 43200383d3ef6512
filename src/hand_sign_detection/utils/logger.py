"""
Logging utilities for the hand sign detection system.

Every component logs through ``Logger``, a small front-end over the standard
``logging`` module that knows how to report session lifecycle events and
detections. Structured fields passed as keyword arguments end up in the JSON
log when JSON output is enabled.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any


CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'

# Attributes every LogRecord carries; anything else was passed as a structured field
_RECORD_ATTRIBUTES = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class Logger:
    """Logging front-end with console, file and JSON-lines outputs."""

    def __init__(
        self,
        name: str = "hand_sign_detection",
        log_dir: str = "logs",
        level: str = "INFO",
        console_output: bool = True,
        file_output: bool = False,
        json_output: bool = False
    ):
        """
        Initialize the logger.

        Args:
            name: Logger name
            log_dir: Directory for log files, created only when file or JSON
                output is enabled
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            console_output: Log to stdout
            file_output: Log to ``<log_dir>/<name>_<timestamp>.log``
            json_output: Log structured records to ``<log_dir>/<name>_<timestamp>.json``
        """
        self.name = name
        self.log_dir = Path(log_dir)

        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        # Re-creating a logger with the same name replaces its outputs
        self.logger.handlers.clear()

        if console_output:
            self._attach(logging.StreamHandler(sys.stdout), logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))

        if file_output or json_output:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            stem = f"{name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

            if file_output:
                self._attach(
                    logging.FileHandler(self.log_dir / f"{stem}.log"),
                    logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
                )
            if json_output:
                self._attach(JsonFileHandler(self.log_dir / f"{stem}.json"))

    @classmethod
    def from_config(cls, name: str, config: Dict[str, Any]) -> "Logger":
        """Build a logger from the ``logging`` section of a detection config."""
        return cls(
            name=name,
            log_dir=config.get('log_dir', 'logs'),
            level=config.get('level', 'INFO'),
            console_output=config.get('console_output', True),
            file_output=config.get('file_output', False),
            json_output=config.get('json_output', False)
        )

    def _attach(self, handler: logging.Handler, formatter: Optional[logging.Formatter] = None) -> None:
        if formatter is not None:
            handler.setFormatter(formatter)
        self.logger.addHandler(handler)

    def debug(self, message: str, **fields) -> None:
        self.logger.debug(message, extra=fields)

    def info(self, message: str, **fields) -> None:
        self.logger.info(message, extra=fields)

    def warning(self, message: str, **fields) -> None:
        self.logger.warning(message, extra=fields)

    def error(self, message: str, **fields) -> None:
        self.logger.error(message, extra=fields)

    def log_config(self, config: Dict[str, Any]) -> None:
        """Log the effective configuration at debug level."""
        self.debug("Configuration loaded", config=config)

    def log_session_start(self, timeout_ms: Optional[float], template_count: int) -> None:
        budget = f"{timeout_ms:.0f}ms" if timeout_ms else "none"
        self.info(
            f"Detection session started: timeout={budget}, templates={template_count}",
            event="session_start", timeout_ms=timeout_ms, template_count=template_count
        )

    def log_session_stop(self, reason: str, frames: int, detections: int) -> None:
        self.info(
            f"Detection session stopped ({reason}): frames={frames}, detections={detections}",
            event="session_stop", reason=reason, frames=frames, detections=detections
        )

    def log_detection(self, label: str, confidence: float, votes: int, source: str) -> None:
        self.info(
            f"Detected '{label}': confidence={confidence:.3f}, votes={votes}, source={source}",
            event="detection", label=label, confidence=confidence, votes=votes, source=source
        )

    def log_frame_stats(self, avg_frame_ms: float, peak_frame_ms: float, total_frames: int) -> None:
        """Log frame processing statistics for a finished session."""
        self.info(
            f"Frame stats: avg={avg_frame_ms:.2f}ms, peak={peak_frame_ms:.2f}ms, total_frames={total_frames}",
            event="frame_stats", avg_frame_ms=avg_frame_ms, peak_frame_ms=peak_frame_ms,
            total_frames=total_frames
        )


class JsonFileHandler(logging.Handler):
    """Appends one JSON object per record, including structured fields."""

    def __init__(self, filename: Path):
        super().__init__()
        self.filename = filename

    def emit(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno
        }
        entry.update({
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and key not in entry
        })

        try:
            with open(self.filename, 'a') as f:
                f.write(json.dumps(entry, default=str) + '\n')
        except OSError:
            self.handleError(record)
