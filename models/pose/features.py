import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .types import CoordinateSpace, JointAngleSet, KeypointMap

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when pose features cannot be computed from a keypoint map."""


class MissingJointError(ExtractionError):
    """Raised when joints required for an angle are absent."""

    def __init__(self, angle_name: str, missing_joints: List[str]):
        self.angle_name = angle_name
        self.missing_joints = missing_joints
        super().__init__(f"Cannot compute {angle_name}: missing {', '.join(missing_joints)}")


# angle id -> (joint_a, vertex joint_b, joint_c)
JOINT_ANGLE_TRIPLES: Dict[str, Tuple[str, str, str]] = {
    'left_shoulder_angle': ('left_hip', 'left_shoulder', 'left_elbow'),
    'right_shoulder_angle': ('right_hip', 'right_shoulder', 'right_elbow'),
    'left_elbow_angle': ('left_shoulder', 'left_elbow', 'left_wrist'),
    'right_elbow_angle': ('right_shoulder', 'right_elbow', 'right_wrist'),
    'left_wrist_angle': ('left_elbow', 'left_wrist', 'left_index'),
    'right_wrist_angle': ('right_elbow', 'right_wrist', 'right_index'),
    'left_hip_angle': ('left_shoulder', 'left_hip', 'left_knee'),
    'right_hip_angle': ('right_shoulder', 'right_hip', 'right_knee'),
    'left_knee_angle': ('left_hip', 'left_knee', 'left_ankle'),
    'right_knee_angle': ('right_hip', 'right_knee', 'right_ankle'),
    'left_ankle_angle': ('left_knee', 'left_ankle', 'left_foot_index'),
    'right_ankle_angle': ('right_knee', 'right_ankle', 'right_foot_index'),
}

# segment id -> (upper joint, lower joint)
BODY_SEGMENTS: Dict[str, Tuple[str, str]] = {
    'left_torso': ('left_shoulder', 'left_hip'),
    'right_torso': ('right_shoulder', 'right_hip'),
    'left_upper_arm': ('left_shoulder', 'left_elbow'),
    'right_upper_arm': ('right_shoulder', 'right_elbow'),
    'left_thigh': ('left_hip', 'left_knee'),
    'right_thigh': ('right_hip', 'right_knee'),
    'left_shin': ('left_knee', 'left_ankle'),
    'right_shin': ('right_knee', 'right_ankle'),
}

# MediaPipe world coordinates have y pointing down
_VERTICAL = np.array([0.0, 1.0, 0.0])


def calculate_angle(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> Optional[float]:
    """
    Calculate the angle at b between the vectors b->a and b->c.

    Args:
        a: First point coordinates [x, y, z]
        b: Second point (vertex) coordinates [x, y, z]
        c: Third point coordinates [x, y, z]

    Returns:
        Angle in degrees within [0, 180], or None if a vector has zero length
    """
    ba = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
    bc = np.asarray(c, dtype=float) - np.asarray(b, dtype=float)

    magnitude = np.linalg.norm(ba) * np.linalg.norm(bc)
    if magnitude == 0 or not np.isfinite(magnitude):
        return None

    cosine_angle = np.clip(np.dot(ba, bc) / magnitude, -1.0, 1.0)
    angle_deg = float(np.degrees(np.arccos(cosine_angle)))
    return min(max(angle_deg, 0.0), 180.0)


class PoseFeatureExtractor:
    """
    PoseFeatureExtractor handles ONLY the computation of pose features from
    world-space keypoints.

    Responsibilities:
    - Relative joint angles from fixed joint triples
    - Segment inclinations from the vertical axis
    - Raw coordinate export

    This class does NOT handle:
    - Pose detection
    - Phase classification
    - Feedback generation

    By default extraction is partial: every angle whose three joints are
    present is returned and the rest are omitted. With strict=True the first
    unresolvable angle raises MissingJointError.
    """

    def __init__(self, strict: bool = False,
                 angle_triples: Optional[Dict[str, Tuple[str, str, str]]] = None):
        """
        Initialize the feature extractor.

        Args:
            strict: Raise on the first angle that cannot be computed
            angle_triples: Optional replacement for JOINT_ANGLE_TRIPLES
        """
        self.strict = strict
        self.angle_triples = dict(angle_triples or JOINT_ANGLE_TRIPLES)

    def get_available_angles(self) -> List[str]:
        return list(self.angle_triples.keys())

    def get_pose_features_3d(self, keypoints: KeypointMap, include_raw: bool = False) -> Dict[str, Any]:
        """
        Compute pose features from world-space keypoints.

        Args:
            keypoints: KeypointMap in world coordinates
            include_raw: Also return raw coordinates and segment inclinations

        Returns:
            Dictionary with 'joint_angles_relative' and, if include_raw,
            'raw_keypoints' and 'segment_inclinations'

        Raises:
            ExtractionError: If the keypoints are not in world space
            MissingJointError: If an angle is unresolvable in strict mode, or
                no angle is resolvable at all
        """
        if keypoints.coordinate_space != CoordinateSpace.WORLD:
            raise ExtractionError(
                f"3D features need world coordinates, got {keypoints.coordinate_space.value}"
            )

        angles: JointAngleSet = {}
        first_missing: Optional[MissingJointError] = None

        for angle_name, (joint_a, joint_b, joint_c) in self.angle_triples.items():
            missing = [j for j in (joint_a, joint_b, joint_c) if j not in keypoints]
            angle = None
            if not missing:
                angle = calculate_angle(
                    keypoints[joint_a].as_array(),
                    keypoints[joint_b].as_array(),
                    keypoints[joint_c].as_array(),
                )

            if angle is None:
                error = MissingJointError(angle_name, missing or [joint_a, joint_b, joint_c])
                if self.strict:
                    raise error
                first_missing = first_missing or error
                continue

            angles[angle_name] = angle

        if not angles and first_missing is not None:
            raise first_missing

        if first_missing is not None:
            logger.debug(f"Partial extraction: {len(angles)}/{len(self.angle_triples)} angles")

        features: Dict[str, Any] = {'joint_angles_relative': angles}

        if include_raw:
            features['raw_keypoints'] = {
                name: landmark.as_array().tolist() for name, landmark in keypoints.items()
            }
            features['segment_inclinations'] = self._segment_inclinations(keypoints)

        return features

    def _segment_inclinations(self, keypoints: KeypointMap) -> Dict[str, float]:
        """Angle of each body segment from the vertical axis, in degrees."""
        inclinations = {}
        for segment_name, (upper, lower) in BODY_SEGMENTS.items():
            if upper not in keypoints or lower not in keypoints:
                continue
            direction = keypoints[lower].as_array() - keypoints[upper].as_array()
            angle = calculate_angle(direction, np.zeros(3), _VERTICAL)
            if angle is not None:
                inclinations[segment_name] = angle
        return inclinations
