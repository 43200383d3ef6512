#!/usr/bin/env python3
"""
Replay a recorded landmark stream through a detection session.

The recording is a JSON-lines file, one frame per line::

    {"t": 0.033, "hands": [[[x, y, z], ... 21 points], ...], "handedness": ["Right"]}

``t`` (seconds) and ``handedness`` are optional.
"""

import sys
import json
import argparse
from pathlib import Path
from typing import Any, Dict, Iterator, List

from hand_sign_detection.core.detector import DetectionSession
from hand_sign_detection.core.landmarks import LandmarkIngestor
from hand_sign_detection.core.rule_classifier import describe_sign
from hand_sign_detection.core.voter import DetectionResult
from hand_sign_detection.data.templates import JsonTemplateStore, TemplateRecorder
from hand_sign_detection.exceptions import NoTemplatesError, ConfigError
from hand_sign_detection.utils.config import ConfigManager
from hand_sign_detection.utils.logger import Logger


def read_recording(path: Path) -> Iterator[Dict[str, Any]]:
    """Yield frames from a JSON-lines recording, skipping blank lines."""
    with open(path, 'r') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{line_no}: invalid JSON ({e})")


def replay(session: DetectionSession, frames: Iterator[Dict[str, Any]]) -> List[DetectionResult]:
    """Feed recorded frames to a started session and collect detections."""
    detections = []
    for frame in frames:
        result = session.process_frame(
            frame.get('hands', []),
            observed_at=frame.get('t'),
            handedness=frame.get('handedness')
        )
        if result is not None:
            detections.append(result)
        if not session.is_active:
            break
    return detections


def record_template(args, config: Dict[str, Any], logger: Logger) -> int:
    """Build a template from the recording and store it."""
    if not args.templates:
        logger.error("--record requires --templates to know where to store the template")
        return 1

    input_cfg = config['input']
    ingestor = LandmarkIngestor(
        coordinate_space=input_cfg['coordinate_space'],
        frame_size=(input_cfg['frame_width'], input_cfg['frame_height']),
        logger=logger
    )
    recorder = TemplateRecorder(logger=logger)
    recorder.start()

    for frame in read_recording(Path(args.recording)):
        multi = ingestor.ingest(frame.get('hands', []), observed_at=frame.get('t'))
        if multi is not None:
            recorder.add_frame(multi)

    template = recorder.finish(args.record, args.description)
    stored = JsonTemplateStore(args.templates, logger=logger).add_template(template)
    print(f"Stored template '{stored.name}' ({stored.frame_count} frames) as {stored.template_id}")
    return 0


def main():
    """Main function for landmark replay."""
    parser = argparse.ArgumentParser(description="Replay a landmark recording through hand sign detection")
    parser.add_argument(
        "recording",
        type=str,
        help="JSON-lines landmark recording"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML file with configuration overrides"
    )
    parser.add_argument(
        "--templates",
        type=str,
        default=None,
        help="Directory of JSON gesture templates"
    )
    parser.add_argument(
        "--timeout-ms",
        type=float,
        default=None,
        help="Session timeout in milliseconds"
    )
    parser.add_argument(
        "--record",
        type=str,
        default=None,
        help="Store the recording as a template with this name instead of detecting"
    )
    parser.add_argument(
        "--description",
        type=str,
        default="",
        help="Description for --record"
    )

    args = parser.parse_args()

    logger = Logger("replay")

    try:
        config = ConfigManager().build_detection_config(args.config)
    except (ConfigError, FileNotFoundError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.log_config(config)

    try:
        if args.record:
            return record_template(args, config, logger)

        store_path = args.templates or config['templates']['store_path']
        store = JsonTemplateStore(store_path, logger=logger) if store_path else None

        def print_detection(result: DetectionResult) -> None:
            sign = describe_sign(result.label)
            print(f"[{result.observed_at:9.3f}s] {sign['name']}: "
                  f"confidence={result.confidence:.3f} votes={result.votes} source={result.source}")

        session = DetectionSession(print_detection, template_store=store, config=config, logger=logger)
        session.start(timeout_ms=args.timeout_ms)

        detections = replay(session, read_recording(Path(args.recording)))
        session.stop()

        stats = session.get_detection_stats()
        logger.info("Final Detection Statistics:")
        logger.info(f"Frames: {stats.total_frames} (with hands: {stats.frames_with_hands}, "
                    f"skipped: {stats.skipped_frames})")
        logger.info(f"Detections: {len(detections)} {stats.label_counts}")
        if session.monitor:
            logger.info(f"Performance: {session.monitor.get_performance_summary(include_system=False)}")

        return 0

    except NoTemplatesError as e:
        logger.error(f"Cannot start detection: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Replay interrupted by user")
        return 0
    except (OSError, ValueError) as e:
        logger.error(f"Replay failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
