import logging
import uuid
from collections import deque
from typing import Any, Callable, Dict, Iterator, List, Optional

import pandas as pd

from .features import ExtractionError, PoseFeatureExtractor
from .keypoints import build_keypoints
from .processor import ExerciseConfig, ExerciseProcessor, FrameFeedback
from .sources import FrameLandmarkSource
from .types import CoordinateSpace, KeypointMap, LandmarkFrame, PhaseStatus

logger = logging.getLogger(__name__)


class ExerciseSession:
    """
    ExerciseSession connects the per-frame modules for one exercise.

    This class orchestrates the process:
    1. A FrameLandmarkSource (or the caller) delivers landmark frames
    2. build_keypoints names the image and world landmarks
    3. PoseFeatureExtractor calculates joint angles
    4. ExerciseProcessor classifies the phase and produces feedback

    Extraction errors are contained here: the frame is still evaluated, with
    no joint angles, so the processor falls back to its no-detection state.
    """

    def __init__(self, config: ExerciseConfig, extractor: Optional[PoseFeatureExtractor] = None,
                 session_id: Optional[str] = None, history_size: int = 900):
        """
        Initialize the session.

        Args:
            config: Exercise configuration
            extractor: Feature extractor (partial extraction by default)
            session_id: Identifier, generated when omitted
            history_size: Number of recent frames kept for summaries
        """
        self.session_id = session_id or str(uuid.uuid4())
        self.config = config
        self.processor = ExerciseProcessor(config)
        self.extractor = extractor or PoseFeatureExtractor()
        self.history = deque(maxlen=history_size)
        self.frames_processed = 0
        self.last_feedback: Optional[FrameFeedback] = None

    def process_frame(self, frame: LandmarkFrame) -> FrameFeedback:
        """
        Evaluate a single landmark frame.

        Args:
            frame: Image and world landmarks for one camera frame

        Returns:
            FrameFeedback from the processor
        """
        joint_angles = None

        if frame.has_detection:
            keypoints_2d = build_keypoints(frame.image_landmarks, CoordinateSpace.IMAGE)
            keypoints_3d = build_keypoints(frame.world_landmarks, CoordinateSpace.WORLD)

            try:
                features = self.extractor.get_pose_features_3d(keypoints_3d, include_raw=False)
                joint_angles = features['joint_angles_relative']
            except ExtractionError as e:
                logger.debug(f"Session {self.session_id}: no joint angles for frame: {e}")
        else:
            keypoints_2d = KeypointMap(points={}, coordinate_space=CoordinateSpace.IMAGE)

        result = self.processor.evaluate_full_body_frame_feedback(keypoints_2d, joint_angles)
        self._record(frame, result, joint_angles)
        return result

    def run(self, source: FrameLandmarkSource,
            on_feedback: Optional[Callable[[FrameFeedback], None]] = None) -> Iterator[FrameFeedback]:
        """
        Evaluate every frame a source delivers.

        Args:
            source: Frame source to drain
            on_feedback: Optional callback invoked with each result

        Yields:
            FrameFeedback per frame
        """
        try:
            for frame in source.frames():
                result = self.process_frame(frame)
                if on_feedback:
                    on_feedback(result)
                yield result
        finally:
            source.close()

    def _record(self, frame: LandmarkFrame, result: FrameFeedback, joint_angles: Optional[Dict[str, float]]):
        self.frames_processed += 1
        self.last_feedback = result

        entry: Dict[str, Any] = {
            'timestamp_ms': frame.timestamp_ms,
            'phase': result.phase,
            'status': result.status.value,
            'rep_count': result.rep_count,
        }
        if joint_angles:
            entry.update(joint_angles)
        self.history.append(entry)

    def summary(self) -> Dict[str, Any]:
        """
        Summarize the recent history of the session.

        Returns:
            Dictionary with counts, phase distribution and joint angle statistics
        """
        base = {
            'session_id': self.session_id,
            'exercise': self.config.name,
            'frames_processed': self.frames_processed,
            'rep_count': self.processor.rep_count,
            'current_phase': self.processor.current_phase.name,
            'last_feedback': self.last_feedback.to_dict() if self.last_feedback else None,
        }

        if not self.history:
            base.update({'frames_with_detection': 0, 'phase_frames': {}, 'joint_angle_statistics': {}})
            return base

        history_df = pd.DataFrame(list(self.history))
        detected = history_df[history_df['status'] != PhaseStatus.NO_DETECTION.value]

        base['frames_with_detection'] = int(len(detected))
        base['phase_frames'] = {
            phase: int(count) for phase, count in detected['phase'].value_counts().items()
        }
        base['joint_angle_statistics'] = self._angle_statistics(history_df)
        return base

    def _angle_statistics(self, history_df: pd.DataFrame) -> Dict[str, Dict[str, float]]:
        angle_columns: List[str] = [
            col for col in history_df.columns if col.endswith('_angle')
        ]

        stats = {}
        for column in angle_columns:
            values = history_df[column].dropna()
            if len(values) == 0:
                continue
            stats[column] = {
                'mean': float(values.mean()),
                'min': float(values.min()),
                'max': float(values.max()),
                'std': float(values.std()) if len(values) > 1 else 0.0,
                'range': float(values.max() - values.min()),
            }
        return stats

    def reset(self):
        """Restart the exercise from the first phase and clear history."""
        self.processor.reset()
        self.history.clear()
        self.frames_processed = 0
        self.last_feedback = None


class SessionLimitError(Exception):
    """Raised when a registry is full."""


class SessionRegistry:
    """Explicit container for active sessions, owned by the application."""

    def __init__(self, max_sessions: int = 32, history_size: int = 900):
        self.max_sessions = max_sessions
        self.history_size = history_size
        self._sessions: Dict[str, ExerciseSession] = {}

    def create(self, config: ExerciseConfig) -> ExerciseSession:
        """
        Create and register a new session.

        Raises:
            SessionLimitError: If max_sessions are already active
        """
        if len(self._sessions) >= self.max_sessions:
            raise SessionLimitError(f"Maximum of {self.max_sessions} active sessions reached")

        session = ExerciseSession(config, history_size=self.history_size)
        self._sessions[session.session_id] = session
        logger.info(f"Created session {session.session_id} for '{config.name}'")
        return session

    def get(self, session_id: str) -> Optional[ExerciseSession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info(f"Closed session {session_id} after {session.frames_processed} frames")
        return True

    def __len__(self) -> int:
        return len(self._sessions)
