import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import exercises, sessions
from core.config import settings
from models.pose import SessionRegistry
from utils.logger import setup_logging

# Setup logging
logger = setup_logging()
logger.info("Starting Pose Feedback API")

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Real-time exercise phase, repetition and form feedback from pose landmarks",
    version=settings.VERSION
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Active exercise sessions
app.state.sessions = SessionRegistry(
    max_sessions=settings.MAX_ACTIVE_SESSIONS,
    history_size=settings.SESSION_HISTORY_SIZE
)

# Include routers
app.include_router(exercises.router, prefix=settings.API_V1_STR, tags=["Exercises"])
app.include_router(sessions.router, prefix=settings.API_V1_STR, tags=["Sessions"])

@app.get("/")
def read_root():
    return {"message": "Welcome to Pose Feedback API", "version": settings.VERSION}

@app.get("/health")
def health_check():
    return {"status": "healthy", "active_sessions": len(app.state.sessions)}

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
