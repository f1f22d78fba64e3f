"""FastAPI routes for Portfolime."""

from portfolime.api.auth import CurrentUser, ReadySession, Session
from portfolime.api.routes import router

__all__ = ["CurrentUser", "ReadySession", "Session", "router"]
