import math

import pytest

from models.pose.types import LandmarkFrame, POSE_LANDMARK_NAMES


def _rotate(vector, degrees):
    rad = math.radians(degrees)
    x, y = vector
    return (x * math.cos(rad) - y * math.sin(rad), x * math.sin(rad) + y * math.cos(rad))


def _normalize(vector):
    length = math.hypot(*vector)
    return (vector[0] / length, vector[1] / length)


def make_world_pose(knee_angle=170.0, hip_angle=170.0, elbow_angle=170.0):
    """
    Build world-space landmark dicts for a person facing the camera.

    Knee, hip and elbow angles are exact on both sides. World y points down.
    """
    points = {}
    head_y = -0.7
    for name in POSE_LANDMARK_NAMES[:11]:
        side = 0.03 if name.startswith('left') or name == 'mouth_left' else -0.03
        if name == 'nose':
            side = 0.0
        points[name] = (side, head_y + (0.05 if 'mouth' in name else 0.0), -0.05)

    for side, sign in (('left', 1.0), ('right', -1.0)):
        shoulder = (0.2 * sign, -0.5)
        hip = (0.1 * sign, 0.0)

        # Legs: rotate the hip->shoulder direction by the hip angle
        up = _normalize((shoulder[0] - hip[0], shoulder[1] - hip[1]))
        knee_dir = _rotate(up, sign * hip_angle)
        knee = (hip[0] + 0.4 * knee_dir[0], hip[1] + 0.4 * knee_dir[1])
        shin_dir = _rotate((-knee_dir[0], -knee_dir[1]), -sign * knee_angle)
        ankle = (knee[0] + 0.4 * shin_dir[0], knee[1] + 0.4 * shin_dir[1])

        # Arms: upper arm straight down, forearm rotated by the elbow angle
        elbow = (shoulder[0], shoulder[1] + 0.3)
        forearm_dir = _rotate((0.0, -1.0), sign * elbow_angle)
        wrist = (elbow[0] + 0.25 * forearm_dir[0], elbow[1] + 0.25 * forearm_dir[1])

        points[f'{side}_shoulder'] = (shoulder[0], shoulder[1], 0.0)
        points[f'{side}_hip'] = (hip[0], hip[1], 0.0)
        points[f'{side}_knee'] = (knee[0], knee[1], 0.0)
        points[f'{side}_ankle'] = (ankle[0], ankle[1], 0.0)
        points[f'{side}_elbow'] = (elbow[0], elbow[1], 0.0)
        points[f'{side}_wrist'] = (wrist[0], wrist[1], 0.0)
        for finger in ('pinky', 'index', 'thumb'):
            points[f'{side}_{finger}'] = (wrist[0], wrist[1] + 0.05, -0.03)
        points[f'{side}_heel'] = (ankle[0], ankle[1] + 0.03, 0.05)
        points[f'{side}_foot_index'] = (ankle[0], ankle[1] + 0.05, -0.12)

    return [
        {'x': points[name][0], 'y': points[name][1], 'z': points[name][2], 'visibility': 0.99}
        for name in POSE_LANDMARK_NAMES
    ]


def to_image_landmarks(world_landmarks):
    """Project world landmarks into normalized image coordinates."""
    return [
        {'x': 0.5 + lm['x'] * 0.5, 'y': 0.4 + lm['y'] * 0.5, 'z': lm['z'] * 0.5, 'visibility': lm['visibility']}
        for lm in world_landmarks
    ]


def make_pose_frame(knee_angle=170.0, hip_angle=170.0, elbow_angle=170.0, timestamp_ms=None):
    world = make_world_pose(knee_angle, hip_angle, elbow_angle)
    return LandmarkFrame(
        image_landmarks=to_image_landmarks(world),
        world_landmarks=world,
        timestamp_ms=timestamp_ms
    )


@pytest.fixture
def pose_frame_factory():
    """Factory for synthetic LandmarkFrames with exact joint angles."""
    return make_pose_frame


@pytest.fixture
def world_pose_factory():
    """Factory for synthetic world-space landmark lists."""
    return make_world_pose
