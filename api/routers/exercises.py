import logging

from fastapi import APIRouter

from core.config import settings
from models.pose import InvalidExerciseConfigError, PoseFeatureExtractor, available_exercises, get_exercise_config
from models.pose.types import POSE_LANDMARK_NAMES

router = APIRouter()

@router.get("/exercises")
async def get_supported_exercises():
    """Get list of exercises a session can be created for."""
    exercises = []
    for name in available_exercises(settings.EXERCISE_CONFIG_DIR):
        try:
            config = get_exercise_config(name, settings.EXERCISE_CONFIG_DIR)
        except (InvalidExerciseConfigError, OSError) as e:
            logging.warning(f"Skipping invalid exercise config '{name}': {e}")
            continue

        exercises.append({
            "id": name,
            "phases": [
                {"name": phase, "label": label}
                for phase, label in zip(config.rep_phases_order, config.labels)
            ],
            "joint_order": list(config.joint_order),
            "feature_basis": config.feature_basis.value
        })

    return {
        "default_exercise": settings.DEFAULT_EXERCISE,
        "supported_exercises": exercises
    }

@router.get("/joints")
async def get_available_joints():
    """Get the landmark vocabulary and the joint angles that are computed."""
    return {
        "landmarks": list(POSE_LANDMARK_NAMES),
        "joint_angles": PoseFeatureExtractor().get_available_angles()
    }
