from pydantic_settings import BaseSettings
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Settings(BaseSettings):
    """
    Application settings.
    """
    # API Config
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Pose Feedback"
    VERSION: str = "0.1.0"

    # MediaPipe Config
    MEDIAPIPE_MODEL_COMPLEXITY: int = 1  # 0, 1, or 2 (higher = more accurate but slower)
    MIN_DETECTION_CONFIDENCE: float = 0.5
    MIN_TRACKING_CONFIDENCE: float = 0.5

    # Exercise Config
    DEFAULT_EXERCISE: str = "squat"
    EXERCISE_CONFIG_DIR: Optional[str] = None  # Directory of <name>.json exercise definitions

    # Session Config
    SESSION_HISTORY_SIZE: int = 900  # ~30 s at 30 fps
    MAX_ACTIVE_SESSIONS: int = 32

    # Logging Config
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

# Create global settings object
settings = Settings()
