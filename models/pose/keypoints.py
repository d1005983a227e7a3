from typing import Any, Dict, Sequence, Union

from .types import CoordinateSpace, KeypointMap, Landmark, POSE_LANDMARK_NAMES

_NAME_TO_INDEX = {name: idx for idx, name in enumerate(POSE_LANDMARK_NAMES)}


def landmark_index(name: str) -> int:
    """
    Get the model landmark index for a joint name.

    Args:
        name: Joint name such as 'left_hip'

    Returns:
        Positional index in the pose model output
    """
    return _NAME_TO_INDEX[name]


def build_keypoints(landmarks: Sequence[Any],
                    coordinate_space: Union[CoordinateSpace, str] = CoordinateSpace.IMAGE) -> KeypointMap:
    """
    Convert a positional landmark list into a named keypoint map.

    A list shorter than the model's landmark count yields a map that is
    missing the trailing joints. Callers skip empty lists instead of building
    an empty map.

    Args:
        landmarks: Landmarks in the pose model's order (index 23 = left_hip)
        coordinate_space: 'image' or 'world'

    Returns:
        KeypointMap tagged with the coordinate space
    """
    points: Dict[str, Landmark] = {}
    for idx, landmark in enumerate(landmarks):
        if idx >= len(POSE_LANDMARK_NAMES):
            break
        points[POSE_LANDMARK_NAMES[idx]] = Landmark.from_any(landmark)

    return KeypointMap(points=points, coordinate_space=CoordinateSpace(coordinate_space))
