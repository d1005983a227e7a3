import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from .features import JOINT_ANGLE_TRIPLES
from .types import (
    POSE_LANDMARK_NAMES,
    FeatureBasis,
    JointAngleSet,
    KeypointMap,
    Orientation,
    Phase,
    PhaseStatus,
)

logger = logging.getLogger(__name__)

# near_threshold default, as a fraction of distance_threshold
DEFAULT_NEAR_THRESHOLD_RATIO = 0.5

# Shoulder span / torso height below this reads as a side view
SIDE_VIEW_RATIO = 0.35


class InvalidExerciseConfigError(ValueError):
    """Raised when an exercise configuration is inconsistent."""


@dataclass(frozen=True)
class ExerciseConfig:
    """
    Immutable description of an exercise's phase cycle.

    Attributes:
        rep_phases_order: Phase names in cycle order; a rep is last -> first
        pose_vectors: One reference feature vector per phase
        labels: Human-readable label per phase
        distance_threshold: Max distance for a phase to count as a match
        phase_change_persistence: Consecutive evaluated frames needed to commit
            a phase; no-detection frames neither count nor break the run
        joint_order: Joints (or angle ids) laid out in the feature vector
        name: Exercise name used in logs
        feature_basis: Whether vectors hold joint angles or image positions
        near_threshold: Distance under which no corrective feedback is given
    """
    rep_phases_order: Tuple[str, ...]
    pose_vectors: Tuple[Tuple[float, ...], ...]
    labels: Tuple[str, ...]
    distance_threshold: float
    phase_change_persistence: int
    joint_order: Tuple[str, ...]
    name: str = "exercise"
    feature_basis: FeatureBasis = FeatureBasis.ANGLES
    near_threshold: Optional[float] = None

    def __post_init__(self):
        try:
            normalized = {
                'rep_phases_order': tuple(str(p) for p in self.rep_phases_order),
                'pose_vectors': tuple(tuple(float(v) for v in vector) for vector in self.pose_vectors),
                'labels': tuple(str(label) for label in self.labels),
                'distance_threshold': float(self.distance_threshold),
                'phase_change_persistence': self._as_int(self.phase_change_persistence),
                'joint_order': tuple(str(j) for j in self.joint_order),
                'name': str(self.name),
                'feature_basis': FeatureBasis(self.feature_basis),
            }
            if self.near_threshold is None:
                normalized['near_threshold'] = normalized['distance_threshold'] * DEFAULT_NEAR_THRESHOLD_RATIO
            else:
                normalized['near_threshold'] = float(self.near_threshold)
        except (TypeError, ValueError) as e:
            raise InvalidExerciseConfigError(f"Malformed exercise config: {e}") from e

        for key, value in normalized.items():
            object.__setattr__(self, key, value)

        self._validate()

    @staticmethod
    def _as_int(value: Any) -> int:
        if isinstance(value, bool) or int(value) != value:
            raise ValueError(f"expected an integer, got {value!r}")
        return int(value)

    def _validate(self):
        phase_count = len(self.rep_phases_order)
        if phase_count < 1:
            raise InvalidExerciseConfigError("rep_phases_order must contain at least one phase")
        if len(self.pose_vectors) != phase_count or len(self.labels) != phase_count:
            raise InvalidExerciseConfigError(
                f"rep_phases_order ({phase_count}), pose_vectors ({len(self.pose_vectors)}) "
                f"and labels ({len(self.labels)}) must have the same length"
            )
        if len(set(self.rep_phases_order)) != phase_count:
            raise InvalidExerciseConfigError("Phase names must be unique")
        if not self.joint_order:
            raise InvalidExerciseConfigError("joint_order must not be empty")
        unknown = [name for name in self.joint_order if not self._is_known_feature(name)]
        if unknown:
            raise InvalidExerciseConfigError(
                f"Unknown joint_order entries for {self.feature_basis.value} basis: {unknown}"
            )

        dimension = self.feature_dimension
        for name, vector in zip(self.rep_phases_order, self.pose_vectors):
            if len(vector) != dimension:
                raise InvalidExerciseConfigError(
                    f"Pose vector for '{name}' has {len(vector)} values, expected {dimension}"
                )
            if not all(math.isfinite(v) for v in vector):
                raise InvalidExerciseConfigError(f"Pose vector for '{name}' has non-finite values")

        if not math.isfinite(self.distance_threshold) or self.distance_threshold < 0:
            raise InvalidExerciseConfigError("distance_threshold must be a finite number >= 0")
        if not 0 <= self.near_threshold <= self.distance_threshold:
            raise InvalidExerciseConfigError("near_threshold must be between 0 and distance_threshold")
        if self.phase_change_persistence < 1:
            raise InvalidExerciseConfigError("phase_change_persistence must be at least 1")

    def _is_known_feature(self, name: str) -> bool:
        if self.feature_basis == FeatureBasis.POSITIONS:
            return name in POSE_LANDMARK_NAMES
        return name in JOINT_ANGLE_TRIPLES or f"{name}_angle" in JOINT_ANGLE_TRIPLES

    @property
    def feature_dimension(self) -> int:
        if self.feature_basis == FeatureBasis.POSITIONS:
            return 2 * len(self.joint_order)
        return len(self.joint_order)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExerciseConfig":
        """
        Build a config from a plain dictionary (JSON, HTTP payloads).

        Raises:
            InvalidExerciseConfigError: On missing, unknown or invalid fields
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidExerciseConfigError(f"Unknown config fields: {sorted(unknown)}")
        try:
            return cls(**dict(data))
        except TypeError as e:
            raise InvalidExerciseConfigError(str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'rep_phases_order': list(self.rep_phases_order),
            'pose_vectors': [list(vector) for vector in self.pose_vectors],
            'labels': list(self.labels),
            'distance_threshold': self.distance_threshold,
            'near_threshold': self.near_threshold,
            'phase_change_persistence': self.phase_change_persistence,
            'joint_order': list(self.joint_order),
            'feature_basis': self.feature_basis.value,
        }


@dataclass
class ProcessorState:
    """Mutable state owned by a single ExerciseProcessor."""
    committed_phase: int = 0
    candidate_phase: Optional[int] = None
    candidate_frames: int = 0
    rep_count: int = 0
    feedback: str = ""
    orientation: Orientation = Orientation.UNKNOWN

    def clear_candidate(self):
        self.candidate_phase = None
        self.candidate_frames = 0


@dataclass(frozen=True)
class FrameFeedback:
    """Result of evaluating one frame."""
    phase: str
    label: str
    phase_index: int
    orientation: Orientation
    feedback: str
    rep_count: int
    status: PhaseStatus
    distance: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase,
            'label': self.label,
            'phase_index': self.phase_index,
            'orientation': self.orientation.value,
            'feedback': self.feedback,
            'rep_count': self.rep_count,
            'status': self.status.value,
            'distance': self.distance,
        }


def estimate_orientation(keypoints: Optional[KeypointMap]) -> Orientation:
    """
    Estimate which way the person faces from image-space shoulders and hips.

    Args:
        keypoints: Image-space keypoint map (may be None or empty)

    Returns:
        Orientation, UNKNOWN when the torso is not fully visible
    """
    required = ('left_shoulder', 'right_shoulder', 'left_hip', 'right_hip')
    if not keypoints or any(name not in keypoints for name in required):
        return Orientation.UNKNOWN

    ls, rs = keypoints['left_shoulder'], keypoints['right_shoulder']
    lh, rh = keypoints['left_hip'], keypoints['right_hip']

    shoulder_span = abs(ls.x - rs.x)
    torso_height = abs((ls.y + rs.y) / 2 - (lh.y + rh.y) / 2)
    if torso_height == 0 or not math.isfinite(shoulder_span / torso_height):
        return Orientation.UNKNOWN

    if shoulder_span / torso_height < SIDE_VIEW_RATIO:
        # Smaller z is closer to the camera
        return Orientation.LEFT_SIDE if ls.z < rs.z else Orientation.RIGHT_SIDE

    # Facing the camera, the left shoulder appears on the image's right
    return Orientation.FRONT if ls.x > rs.x else Orientation.BACK


class ExerciseProcessor:
    """
    ExerciseProcessor handles ONLY the per-frame phase classification of a
    single exercise session.

    Responsibilities:
    - Nearest-phase matching against the configured pose vectors
    - Persistence smoothing of phase changes
    - Repetition counting (last phase -> first phase)
    - Orientation and feedback text for each frame

    This class does NOT handle:
    - Pose detection
    - Joint angle calculations
    - Rendering

    Calls must come from one logical stream; the processor is not
    thread-safe.
    """

    def __init__(self, config: ExerciseConfig):
        """
        Initialize the processor.

        Args:
            config: ExerciseConfig or an equivalent dictionary

        Raises:
            InvalidExerciseConfigError: If the configuration is inconsistent
        """
        if isinstance(config, Mapping):
            config = ExerciseConfig.from_dict(config)
        self.config = config
        self.phases = tuple(
            Phase(idx, name, label)
            for idx, (name, label) in enumerate(zip(config.rep_phases_order, config.labels))
        )
        self._pose_matrix = np.array(config.pose_vectors, dtype=float)
        self.state = ProcessorState()

    @property
    def current_phase(self) -> Phase:
        return self.phases[self.state.committed_phase]

    @property
    def rep_count(self) -> int:
        return self.state.rep_count

    def reset(self):
        """Return to the first phase with a zero rep count."""
        self.state = ProcessorState()

    def evaluate_full_body_frame_feedback(self, keypoints_2d: Optional[KeypointMap],
                                          joint_angles: Optional[JointAngleSet]) -> FrameFeedback:
        """
        Evaluate one frame and advance the phase state machine.

        Args:
            keypoints_2d: Image-space keypoints for the frame
            joint_angles: Joint angles for the frame, None if extraction failed

        Returns:
            FrameFeedback for the frame; NO_DETECTION status when the input
            is insufficient
        """
        orientation = estimate_orientation(keypoints_2d)
        if not keypoints_2d:
            return self._no_detection(orientation)

        vector = self._assemble_feature_vector(keypoints_2d, joint_angles)
        if vector is None:
            return self._no_detection(orientation)

        return self._step(vector, orientation)

    def evaluate_feature_vector(self, vector: Sequence[float],
                                keypoints_2d: Optional[KeypointMap] = None) -> FrameFeedback:
        """
        Advance the state machine from an already assembled feature vector.

        Args:
            vector: Values laid out as described by joint_order
            keypoints_2d: Optional image keypoints, used only for orientation

        Returns:
            FrameFeedback for the frame
        """
        orientation = estimate_orientation(keypoints_2d)
        try:
            values = np.asarray(vector, dtype=float).reshape(-1)
        except (TypeError, ValueError):
            return self._no_detection(orientation)

        if values.shape != (self.config.feature_dimension,) or not np.all(np.isfinite(values)):
            return self._no_detection(orientation)

        return self._step(values, orientation)

    def _assemble_feature_vector(self, keypoints_2d: KeypointMap,
                                 joint_angles: Optional[JointAngleSet]) -> Optional[np.ndarray]:
        # Failed extraction skips the frame for either basis
        if joint_angles is None:
            return None

        values = []
        if self.config.feature_basis == FeatureBasis.POSITIONS:
            for name in self.config.joint_order:
                landmark = keypoints_2d.get(name)
                if landmark is None:
                    return None
                values.extend([landmark.x, landmark.y])
        else:
            for name in self.config.joint_order:
                key = name if name in joint_angles else f"{name}_angle"
                value = joint_angles.get(key)
                if value is None:
                    return None
                values.append(value)

        try:
            vector = np.array(values, dtype=float)
        except (TypeError, ValueError):
            return None
        if not np.all(np.isfinite(vector)):
            return None
        return vector

    def _step(self, vector: np.ndarray, orientation: Orientation) -> FrameFeedback:
        state = self.state
        distances = np.linalg.norm(self._pose_matrix - vector, axis=1)
        best = int(np.argmin(distances))
        best_distance = float(distances[best])

        if best_distance > self.config.distance_threshold:
            state.clear_candidate()
            status = PhaseStatus.OUT_OF_RANGE
        elif best == state.committed_phase:
            state.clear_candidate()
            status = PhaseStatus.STABLE
        else:
            if state.candidate_phase == best:
                state.candidate_frames += 1
            else:
                state.candidate_phase = best
                state.candidate_frames = 1
            status = PhaseStatus.TRANSITIONING

            if state.candidate_frames >= self.config.phase_change_persistence:
                self._commit(best)
                status = PhaseStatus.STABLE

        feedback = self._compose_feedback(status, best, vector, best_distance)
        state.feedback = feedback
        state.orientation = orientation
        return self._result(status, orientation, best_distance)

    def _commit(self, phase_index: int):
        state = self.state
        previous = state.committed_phase
        state.committed_phase = phase_index
        state.clear_candidate()

        logger.info(
            f"{self.config.name}: phase {self.phases[previous].name} -> {self.phases[phase_index].name}"
        )

        if phase_index == 0 and previous == len(self.phases) - 1:
            state.rep_count += 1
            logger.info(f"{self.config.name}: rep {state.rep_count} completed")

    def _compose_feedback(self, status: PhaseStatus, target_index: int,
                          vector: np.ndarray, distance: float) -> str:
        if distance <= self.config.near_threshold:
            return ""

        deviations = vector - self._pose_matrix[target_index]
        feature = int(np.argmax(np.abs(deviations)))
        cue = self._directional_cue(feature, float(deviations[feature]))

        if target_index != self.state.committed_phase:
            verb = "reach"
        elif status == PhaseStatus.OUT_OF_RANGE:
            verb = "return to"
        else:
            verb = "hold"
        return f"{cue} to {verb} {self.phases[target_index].label}"

    def _directional_cue(self, feature: int, deviation: float) -> str:
        if self.config.feature_basis == FeatureBasis.POSITIONS:
            joint = _display_name(self.config.joint_order[feature // 2])
            if feature % 2 == 1:
                # Image y grows downward
                return f"Raise your {joint}" if deviation > 0 else f"Lower your {joint}"
            return f"Shift your {joint} left" if deviation > 0 else f"Shift your {joint} right"

        joint = _display_name(self.config.joint_order[feature])
        return f"Bend your {joint} more" if deviation > 0 else f"Straighten your {joint}"

    def _no_detection(self, orientation: Orientation) -> FrameFeedback:
        self.state.feedback = ""
        self.state.orientation = orientation
        return self._result(PhaseStatus.NO_DETECTION, orientation, None)

    def _result(self, status: PhaseStatus, orientation: Orientation,
                distance: Optional[float]) -> FrameFeedback:
        phase = self.current_phase
        return FrameFeedback(
            phase=phase.name,
            label=phase.label,
            phase_index=phase.index,
            orientation=orientation,
            feedback=self.state.feedback,
            rep_count=self.state.rep_count,
            status=status,
            distance=distance,
        )


def _display_name(name: str) -> str:
    if name.endswith('_angle'):
        name = name[:-len('_angle')]
    return name.replace('_', ' ')
