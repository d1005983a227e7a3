#!/usr/bin/env python
"""
Exercise Feedback CLI

Runs an exercise session over a video file, a webcam or a recorded JSON
landmark file and logs phase changes, repetitions and form feedback.
"""

import argparse
import json
import logging
import os
import sys

from core.config import settings
from models.pose import (
    ExerciseSession,
    RecordedLandmarkSource,
    get_exercise_config,
)
from models.pose.exercises import load_exercise_config

def setup_logging():
    """Set up logging."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    logging.basicConfig(level=logging.INFO, format=log_format)
    return logging.getLogger(__name__)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Exercise Feedback CLI")
    parser.add_argument("input", help="Video file, recorded .json landmarks, or camera id with --camera")
    parser.add_argument("--exercise", "-e", default=settings.DEFAULT_EXERCISE,
                        help="Exercise name (built-in or from EXERCISE_CONFIG_DIR)")
    parser.add_argument("--config", "-c", help="Path to an exercise config JSON file (overrides --exercise)")
    parser.add_argument("--camera", action="store_true", help="Treat INPUT as a camera device id")
    parser.add_argument("--model-complexity", "-m", type=int, choices=[0, 1, 2],
                        default=settings.MEDIAPIPE_MODEL_COMPLEXITY, help="MediaPipe model complexity (0-2)")
    parser.add_argument("--every-n-frames", "-n", type=int, default=1,
                        help="Only evaluate every Nth captured frame")
    parser.add_argument("--summary", action="store_true", help="Print a JSON session summary at the end")
    return parser

def create_source(args):
    """Pick the frame source for the command-line input."""
    if not args.camera and args.input.lower().endswith(".json"):
        return RecordedLandmarkSource.from_json(args.input)

    # OpenCV and MediaPipe are only needed for live or video input
    from models.pose.mediapipe.landmark_source import LandmarkSourceConfig, MediaPipeLandmarkSource

    source_config = LandmarkSourceConfig(
        model_complexity=args.model_complexity,
        min_detection_confidence=settings.MIN_DETECTION_CONFIDENCE,
        min_tracking_confidence=settings.MIN_TRACKING_CONFIDENCE,
        process_every_n_frames=max(1, args.every_n_frames)
    )
    capture_source = int(args.input) if args.camera else args.input
    return MediaPipeLandmarkSource(capture_source, source_config)

def main(argv=None):
    """Main entry point."""
    logger = setup_logging()
    args = build_parser().parse_args(argv)

    # Validate input file
    if not args.camera and not os.path.isfile(args.input):
        logger.error(f"Input file does not exist: {args.input}")
        return 1

    try:
        if args.config:
            config = load_exercise_config(args.config)
        else:
            config = get_exercise_config(args.exercise, settings.EXERCISE_CONFIG_DIR)
    except (KeyError, OSError, ValueError) as e:
        # InvalidExerciseConfigError and JSON decode errors are ValueErrors
        logger.error(f"Could not load exercise configuration: {e}")
        return 1

    logger.info(f"Exercise: {config.name} ({' -> '.join(config.rep_phases_order)})")

    session = ExerciseSession(config, history_size=settings.SESSION_HISTORY_SIZE)

    last_message = None
    try:
        source = create_source(args)
        for result in session.run(source):
            message = (result.phase, result.rep_count, result.feedback)
            if message != last_message:
                logger.info(
                    f"[{result.status.value}] phase={result.label} reps={result.rep_count} "
                    f"orientation={result.orientation.value} feedback={result.feedback or '-'}"
                )
                last_message = message
    except (IOError, KeyError, ValueError) as e:
        logger.error(f"Could not read input {args.input}: {e}")
        return 1

    logger.info(f"Finished: {session.processor.rep_count} reps over {session.frames_processed} frames")

    if args.summary:
        print(json.dumps(session.summary(), indent=2))

    return 0

if __name__ == "__main__":
    sys.exit(main())
