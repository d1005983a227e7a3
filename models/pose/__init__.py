"""
Pose feedback module: keypoints, joint angle features and exercise phase tracking.
"""

from .types import CoordinateSpace, FeatureBasis, Landmark, LandmarkFrame, KeypointMap, Orientation, Phase, PhaseStatus
from .keypoints import build_keypoints, landmark_index
from .features import PoseFeatureExtractor, ExtractionError, MissingJointError
from .processor import ExerciseConfig, ExerciseProcessor, FrameFeedback, InvalidExerciseConfigError
from .sources import FrameLandmarkSource, RecordedLandmarkSource
from .session import ExerciseSession, SessionRegistry, SessionLimitError
from .exercises import get_exercise_config, available_exercises

__all__ = [
    'CoordinateSpace',
    'FeatureBasis',
    'Landmark',
    'LandmarkFrame',
    'KeypointMap',
    'Orientation',
    'Phase',
    'PhaseStatus',
    'build_keypoints',
    'landmark_index',
    'PoseFeatureExtractor',
    'ExtractionError',
    'MissingJointError',
    'ExerciseConfig',
    'ExerciseProcessor',
    'FrameFeedback',
    'InvalidExerciseConfigError',
    'FrameLandmarkSource',
    'RecordedLandmarkSource',
    'ExerciseSession',
    'SessionRegistry',
    'SessionLimitError',
    'get_exercise_config',
    'available_exercises'
]
