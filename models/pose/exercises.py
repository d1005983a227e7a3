import json
import logging
import os
import re
from typing import Dict, List, Optional

from .processor import ExerciseConfig, InvalidExerciseConfigError

logger = logging.getLogger(__name__)

# Exercise names map to file names inside the config directory
_EXERCISE_NAME_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def _builtin_exercises() -> Dict[str, ExerciseConfig]:
    """Built-in exercise definitions. Angles are in degrees."""
    return {
        'squat': ExerciseConfig(
            name='squat',
            rep_phases_order=['standing', 'bottom'],
            labels=['Standing', 'Squat bottom'],
            joint_order=['left_knee', 'right_knee', 'left_hip', 'right_hip'],
            pose_vectors=[
                [170.0, 170.0, 170.0, 170.0],
                [85.0, 85.0, 80.0, 80.0],
            ],
            distance_threshold=45.0,
            near_threshold=20.0,
            phase_change_persistence=3,
        ),
        'pushup': ExerciseConfig(
            name='pushup',
            rep_phases_order=['up', 'down'],
            labels=['Arms extended', 'Chest down'],
            joint_order=['left_elbow', 'right_elbow', 'left_hip', 'right_hip'],
            pose_vectors=[
                [165.0, 165.0, 175.0, 175.0],
                [80.0, 80.0, 175.0, 175.0],
            ],
            distance_threshold=40.0,
            near_threshold=20.0,
            phase_change_persistence=3,
        ),
        'bicep_curl': ExerciseConfig(
            name='bicep_curl',
            rep_phases_order=['extended', 'curled'],
            labels=['Arms extended', 'Arms curled'],
            joint_order=['left_elbow', 'right_elbow'],
            pose_vectors=[
                [160.0, 160.0],
                [45.0, 45.0],
            ],
            distance_threshold=35.0,
            near_threshold=15.0,
            phase_change_persistence=2,
        ),
    }


BUILTIN_EXERCISES = _builtin_exercises()


def load_exercise_config(path: str) -> ExerciseConfig:
    """
    Load an exercise configuration from a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        ExerciseConfig

    Raises:
        InvalidExerciseConfigError: If the file content is not a valid config
    """
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except ValueError as e:
            raise InvalidExerciseConfigError(f"Exercise file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidExerciseConfigError(f"Exercise file {path} must contain a JSON object")

    data.setdefault('name', os.path.splitext(os.path.basename(path))[0])
    return ExerciseConfig.from_dict(data)


def available_exercises(config_dir: Optional[str] = None) -> List[str]:
    """
    List exercise names from the config directory and the built-ins.

    Args:
        config_dir: Optional directory of <name>.json exercise files

    Returns:
        Sorted exercise names
    """
    names = set(BUILTIN_EXERCISES)
    if config_dir and os.path.isdir(config_dir):
        names.update(
            os.path.splitext(entry)[0]
            for entry in os.listdir(config_dir)
            if entry.endswith('.json') and _EXERCISE_NAME_PATTERN.fullmatch(os.path.splitext(entry)[0])
        )
    return sorted(names)


def get_exercise_config(name: str, config_dir: Optional[str] = None) -> ExerciseConfig:
    """
    Resolve an exercise by name, preferring <config_dir>/<name>.json.

    Args:
        name: Exercise name
        config_dir: Optional directory of exercise JSON files

    Returns:
        ExerciseConfig

    Raises:
        KeyError: If no exercise with that name exists
    """
    if not _EXERCISE_NAME_PATTERN.fullmatch(name):
        raise KeyError(f"Unknown exercise: {name}")

    if config_dir:
        path = os.path.join(config_dir, f"{name}.json")
        if os.path.isfile(path):
            logger.info(f"Loading exercise '{name}' from {path}")
            return load_exercise_config(path)

    if name not in BUILTIN_EXERCISES:
        raise KeyError(f"Unknown exercise: {name}")
    return BUILTIN_EXERCISES[name]
