"""API routers."""

from taskmaster.routers.auth import router as auth_router
from taskmaster.routers.tasks import router as tasks_router

__all__ = ["auth_router", "tasks_router"]
