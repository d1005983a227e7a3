import cv2
import mediapipe as mp
import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from ..types import LandmarkFrame

logger = logging.getLogger(__name__)


@dataclass
class LandmarkSourceConfig:
    """Configuration for MediaPipe landmark capture."""
    model_complexity: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    smooth_landmarks: bool = True
    process_every_n_frames: int = 1


class MediaPipeLandmarkSource:
    """
    MediaPipeLandmarkSource handles ONLY capture and pose landmark detection.

    Responsibilities:
    - Reading frames from a video file or camera with OpenCV
    - Running MediaPipe Pose on each frame
    - Yielding image and world landmark lists per frame

    This class does NOT handle:
    - Joint angle calculations
    - Phase classification
    - Visualization
    """

    def __init__(self, capture_source: Union[str, int], config: Optional[LandmarkSourceConfig] = None):
        """
        Initialize the landmark source.

        Args:
            capture_source: Video file path or camera device id
            config: Detection configuration
        """
        self.capture_source = capture_source
        self.config = config or LandmarkSourceConfig()
        self.pose = None  # Lazy initialization
        self.cap = None

    def _initialize_detector(self):
        """Initialize the MediaPipe pose detector if not already initialized."""
        if self.pose is None:
            self.pose = mp.solutions.pose.Pose(
                static_image_mode=False,
                model_complexity=self.config.model_complexity,
                min_detection_confidence=self.config.min_detection_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
                smooth_landmarks=self.config.smooth_landmarks
            )

    def _open_capture(self):
        self.cap = cv2.VideoCapture(self.capture_source)
        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            raise IOError(f"Could not open capture source {self.capture_source!r}")
        logger.info(f"Opened capture source {self.capture_source!r}")

    def detect(self, frame, timestamp_ms: Optional[int] = None) -> LandmarkFrame:
        """
        Detect pose landmarks in a single BGR frame.

        Args:
            frame: Input image frame as numpy array (BGR)
            timestamp_ms: Capture timestamp of the frame

        Returns:
            LandmarkFrame with empty lists when no person was detected
        """
        self._initialize_detector()

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self.pose.process(rgb_frame)

        image_landmarks = list(results.pose_landmarks.landmark) if results.pose_landmarks else []
        world_landmarks = list(results.pose_world_landmarks.landmark) if results.pose_world_landmarks else []

        return LandmarkFrame(
            image_landmarks=image_landmarks,
            world_landmarks=world_landmarks,
            timestamp_ms=timestamp_ms
        )

    def frames(self) -> Iterator[LandmarkFrame]:
        """
        Yield landmark frames until the capture is exhausted.

        Frames are read synchronously, so a slow consumer drops nothing but
        simply slows capture down; for live cameras the driver discards
        frames that were not read in time.
        """
        if self.cap is None:
            self._open_capture()

        frame_idx = 0
        try:
            while True:
                ret, frame = self.cap.read()
                if not ret:
                    break

                if frame_idx % self.config.process_every_n_frames == 0:
                    timestamp_ms = int(self.cap.get(cv2.CAP_PROP_POS_MSEC))
                    yield self.detect(frame, timestamp_ms)

                frame_idx += 1
        finally:
            logger.info(f"Capture finished after {frame_idx} frames")
            self.release()

    def close(self) -> None:
        self.release()

    def release(self):
        """Release the capture device and MediaPipe resources."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        if self.pose:
            self.pose.close()
            self.pose = None
