import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Protocol, Union, runtime_checkable

from .types import Landmark, LandmarkFrame

logger = logging.getLogger(__name__)


@runtime_checkable
class FrameLandmarkSource(Protocol):
    """
    Anything that yields pose landmark frames.

    Implementations deliver frames only as fast as the consumer drains them;
    frames are dropped rather than queued.
    """

    def frames(self) -> Iterator[LandmarkFrame]:
        ...

    def close(self) -> None:
        ...


def frame_from_dict(data: Mapping[str, Any]) -> LandmarkFrame:
    """
    Build a LandmarkFrame from a recorded frame dictionary.

    Args:
        data: Dict with 'landmarks', 'world_landmarks' and optional 'timestamp_ms'

    Returns:
        LandmarkFrame
    """
    timestamp = data.get('timestamp_ms')
    return LandmarkFrame(
        image_landmarks=list(data.get('landmarks') or []),
        world_landmarks=list(data.get('world_landmarks') or []),
        timestamp_ms=int(timestamp) if timestamp is not None else None,
    )


class RecordedLandmarkSource:
    """Replays landmark frames recorded as dictionaries or a JSON file."""

    def __init__(self, frames: Iterable[Union[LandmarkFrame, Mapping[str, Any]]]):
        self._frames: List[LandmarkFrame] = [
            frame if isinstance(frame, LandmarkFrame) else frame_from_dict(frame)
            for frame in frames
        ]

    @classmethod
    def from_json(cls, path: str) -> "RecordedLandmarkSource":
        """
        Load a recording of the form {"frames": [...]} or a bare frame list.

        Args:
            path: Path to the JSON recording

        Returns:
            RecordedLandmarkSource
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        frames = data['frames'] if isinstance(data, dict) else data
        logger.info(f"Loaded {len(frames)} recorded frames from {path}")
        return cls(frames)

    def __len__(self) -> int:
        return len(self._frames)

    def frames(self) -> Iterator[LandmarkFrame]:
        return iter(list(self._frames))

    def close(self) -> None:
        pass


def dump_recording(frames: Iterable[LandmarkFrame], path: str) -> None:
    """Write frames to a JSON recording readable by RecordedLandmarkSource."""
    def _serialize(landmarks: List[Any]) -> List[Dict[str, Any]]:
        return [Landmark.from_any(lm).to_dict() for lm in landmarks]

    payload = {
        'frames': [
            {
                'timestamp_ms': frame.timestamp_ms,
                'landmarks': _serialize(frame.image_landmarks),
                'world_landmarks': _serialize(frame.world_landmarks),
            }
            for frame in frames
        ]
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f)
