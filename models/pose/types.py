from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

import numpy as np


class CoordinateSpace(str, Enum):
    """
    Coordinate space a set of landmarks is expressed in.

    Options:
    - IMAGE: x/y normalized to the frame (0-1), z relative depth
    - WORLD: metric coordinates centered between the hips
    """
    IMAGE = "image"
    WORLD = "world"


class FeatureBasis(str, Enum):
    """What an exercise's pose vectors are made of."""
    ANGLES = "angles"
    POSITIONS = "positions"


class Orientation(str, Enum):
    """Which way the tracked person is facing relative to the camera."""
    FRONT = "front"
    BACK = "back"
    LEFT_SIDE = "left_side"
    RIGHT_SIDE = "right_side"
    UNKNOWN = "unknown"


class PhaseStatus(str, Enum):
    """
    Per-frame status of the phase state machine.

    Options:
    - STABLE: the committed phase is the best eligible match
    - TRANSITIONING: another phase is matching but has not persisted long enough
    - OUT_OF_RANGE: no phase is within the distance threshold
    - NO_DETECTION: input was insufficient, nothing was evaluated
    """
    STABLE = "stable"
    TRANSITIONING = "transitioning"
    OUT_OF_RANGE = "out_of_range"
    NO_DETECTION = "no_detection"


class Phase(NamedTuple):
    """One stage of a repetitive exercise."""
    index: int
    name: str
    label: str


@dataclass(frozen=True)
class Landmark:
    """A single body joint position with optional confidence values."""
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None
    presence: Optional[float] = None

    @classmethod
    def from_any(cls, landmark: Any) -> "Landmark":
        """
        Create a Landmark from a MediaPipe landmark, a mapping or a sequence.

        Args:
            landmark: Object with x/y/z attributes, dict with x/y/z keys,
                or a sequence of at least two numbers

        Returns:
            Landmark instance
        """
        if isinstance(landmark, Landmark):
            return landmark
        if isinstance(landmark, Mapping):
            return cls(
                x=float(landmark["x"]),
                y=float(landmark["y"]),
                z=float(landmark.get("z", 0.0)),
                visibility=_optional_float(landmark.get("visibility")),
                presence=_optional_float(landmark.get("presence")),
            )
        if hasattr(landmark, 'x') and hasattr(landmark, 'y'):
            return cls(
                x=float(landmark.x),
                y=float(landmark.y),
                z=float(getattr(landmark, 'z', 0.0)),
                visibility=_optional_float(getattr(landmark, 'visibility', None)),
                presence=_optional_float(getattr(landmark, 'presence', None)),
            )
        values = list(landmark)
        return cls(
            x=float(values[0]),
            y=float(values[1]),
            z=float(values[2]) if len(values) > 2 else 0.0,
            visibility=_optional_float(values[3]) if len(values) > 3 else None,
        )

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {
            'x': self.x,
            'y': self.y,
            'z': self.z,
            'visibility': self.visibility,
            'presence': self.presence,
        }


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


# MediaPipe pose landmark ordering; the list index is the model's landmark index
POSE_LANDMARK_NAMES = (
    'nose',
    'left_eye_inner', 'left_eye', 'left_eye_outer',
    'right_eye_inner', 'right_eye', 'right_eye_outer',
    'left_ear', 'right_ear',
    'mouth_left', 'mouth_right',
    'left_shoulder', 'right_shoulder',
    'left_elbow', 'right_elbow',
    'left_wrist', 'right_wrist',
    'left_pinky', 'right_pinky',
    'left_index', 'right_index',
    'left_thumb', 'right_thumb',
    'left_hip', 'right_hip',
    'left_knee', 'right_knee',
    'left_ankle', 'right_ankle',
    'left_heel', 'right_heel',
    'left_foot_index', 'right_foot_index',
)


@dataclass
class KeypointMap(Mapping):
    """
    Named joint -> Landmark mapping for a single frame.

    Joints that were not detected are simply absent. Keys must belong to
    POSE_LANDMARK_NAMES.
    """
    points: Dict[str, Landmark]
    coordinate_space: CoordinateSpace

    def __post_init__(self):
        self.coordinate_space = CoordinateSpace(self.coordinate_space)
        unknown = set(self.points) - set(POSE_LANDMARK_NAMES)
        if unknown:
            raise ValueError(f"Unknown joint names: {sorted(unknown)}")

    def __getitem__(self, name: str) -> Landmark:
        return self.points[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'coordinate_space': self.coordinate_space.value,
            'points': {name: landmark.to_dict() for name, landmark in self.points.items()},
        }


@dataclass
class LandmarkFrame:
    """One frame of pose model output, as delivered by a frame source."""
    image_landmarks: List[Any] = field(default_factory=list)
    world_landmarks: List[Any] = field(default_factory=list)
    timestamp_ms: Optional[int] = None

    @property
    def has_detection(self) -> bool:
        return bool(self.image_landmarks) and bool(self.world_landmarks)


# Named angle id -> degrees
JointAngleSet = Dict[str, float]
