"""Task API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from taskmaster.database import get_db
from taskmaster.dependencies import CurrentUser, get_current_user, get_task_service
from taskmaster.errors import AuthError, AuthFailure, envelope
from taskmaster.schemas.task import TaskCreateRequest, TaskResponse, TaskUpdateRequest
from taskmaster.services.task import TaskService

router = APIRouter(prefix="/api/task", tags=["Tasks"])


def _task_payload(task) -> dict:
    return {"task": TaskResponse.model_validate(task).model_dump(mode="json")}


@router.post("/add", status_code=201)
def add_task(
    body: TaskCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: TaskService = Depends(get_task_service),
) -> dict:
    """Create a task for the current user."""
    error = service.validate_fields(title=body.title, priority=body.priority)
    if error:
        raise AuthError(AuthFailure.VALIDATION, error)
    task = service.create_task(db, user.user_id, body.title, body.priority, body.due_date)
    return envelope(True, "Task added successfully", _task_payload(task))


@router.get("/my")
def list_tasks(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: TaskService = Depends(get_task_service),
) -> dict:
    """List all tasks for the current user."""
    tasks = service.get_user_tasks(db, user.user_id)
    items = [TaskResponse.model_validate(t).model_dump(mode="json") for t in tasks]
    return envelope(True, "Tasks retrieved", {"items": items, "total": len(items)})


@router.get("/{task_id}")
def get_task(
    task_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: TaskService = Depends(get_task_service),
) -> dict:
    """Get a single task by ID."""
    task = service.get_task(db, task_id, user.user_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return envelope(True, "Task retrieved", _task_payload(task))


@router.put("/update/{task_id}")
def update_task(
    task_id: int,
    body: TaskUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: TaskService = Depends(get_task_service),
) -> dict:
    """Update a task (title, priority, due date, completion)."""
    error = service.validate_fields(title=body.title, priority=body.priority)
    if error:
        raise AuthError(AuthFailure.VALIDATION, error)
    task = service.get_task(db, task_id, user.user_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    task = service.update_task(db, task, **body.model_dump(exclude_unset=True))
    return envelope(True, "Task updated successfully", _task_payload(task))


@router.delete("/delete/{task_id}")
def delete_task(
    task_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: TaskService = Depends(get_task_service),
) -> dict:
    """Delete a task."""
    task = service.get_task(db, task_id, user.user_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    service.delete_task(db, task)
    return envelope(True, "Task deleted successfully")
