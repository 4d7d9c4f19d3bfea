"""API routers for the FastAPI backend."""

from .auth import router as auth_router
from .documents import router as documents_router
from .files import router as files_router
from .interview import router as interview_router
from .projects import router as projects_router

__all__ = [
    "auth_router",
    "documents_router",
    "files_router",
    "interview_router",
    "projects_router",
]
