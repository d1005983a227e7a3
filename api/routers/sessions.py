from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from typing import List, Optional

from api.dependencies import get_registry
from core.config import settings
from models.pose import (
    ExerciseConfig,
    ExerciseSession,
    InvalidExerciseConfigError,
    LandmarkFrame,
    SessionLimitError,
    SessionRegistry,
    get_exercise_config,
)
from utils.serialization import CustomJSONResponse

router = APIRouter()

class LandmarkModel(BaseModel):
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None
    presence: Optional[float] = None

class ExerciseConfigModel(BaseModel):
    rep_phases_order: List[str]
    pose_vectors: List[List[float]]
    labels: List[str]
    distance_threshold: float
    phase_change_persistence: int
    joint_order: List[str]
    name: str = "custom"
    feature_basis: str = "angles"
    near_threshold: Optional[float] = None

class SessionCreateRequest(BaseModel):
    exercise: Optional[str] = Field(None, description="Built-in or configured exercise name")
    config: Optional[ExerciseConfigModel] = Field(None, description="Inline exercise definition")

class FrameRequest(BaseModel):
    landmarks: List[LandmarkModel] = Field(default_factory=list, description="Image-space landmarks")
    world_landmarks: List[LandmarkModel] = Field(default_factory=list, description="World-space landmarks")
    timestamp_ms: Optional[int] = None

def _get_session_or_404(registry: SessionRegistry, session_id: str) -> ExerciseSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return session

@router.post("/sessions", status_code=201)
async def create_session(request: SessionCreateRequest, registry: SessionRegistry = Depends(get_registry)):
    """
    Start a new exercise session from a named exercise or an inline config.
    """
    exercise = request.exercise or settings.DEFAULT_EXERCISE
    try:
        if request.config is not None:
            config = ExerciseConfig.from_dict(request.config.model_dump())
        else:
            config = get_exercise_config(exercise, settings.EXERCISE_CONFIG_DIR)
        session = registry.create(config)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown exercise: {exercise}")
    except InvalidExerciseConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SessionLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))

    return CustomJSONResponse(
        status_code=201,
        content={"session_id": session.session_id, "exercise": config.to_dict()}
    )

@router.post("/sessions/{session_id}/frames")
async def submit_frame(session_id: str, request: FrameRequest, registry: SessionRegistry = Depends(get_registry)):
    """
    Evaluate one frame of landmarks and return phase, orientation and feedback.
    Empty landmark lists mean no person was detected in the frame.
    """
    session = _get_session_or_404(registry, session_id)

    frame = LandmarkFrame(
        image_landmarks=[lm.model_dump() for lm in request.landmarks],
        world_landmarks=[lm.model_dump() for lm in request.world_landmarks],
        timestamp_ms=request.timestamp_ms
    )
    result = session.process_frame(frame)

    return CustomJSONResponse(content=result.to_dict())

@router.get("/sessions/{session_id}")
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Get the summary of an active session."""
    session = _get_session_or_404(registry, session_id)
    return CustomJSONResponse(content=session.summary())

@router.post("/sessions/{session_id}/reset")
async def reset_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Restart a session from its first phase."""
    session = _get_session_or_404(registry, session_id)
    session.reset()
    return CustomJSONResponse(content=session.summary())

@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """End a session."""
    if not registry.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return Response(status_code=204)
