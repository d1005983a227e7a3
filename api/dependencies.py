from fastapi import Request

from models.pose import SessionRegistry

def get_registry(request: Request) -> SessionRegistry:
    """Session registry owned by the running application."""
    return request.app.state.sessions
