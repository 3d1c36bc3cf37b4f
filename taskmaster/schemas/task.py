"""Pydantic schemas for task endpoints."""

from datetime import datetime

from pydantic import BaseModel


class TaskCreateRequest(BaseModel):
    title: str
    priority: str = "Medium"
    due_date: str | None = None


class TaskUpdateRequest(BaseModel):
    title: str | None = None
    priority: str | None = None
    due_date: str | None = None
    completed: bool | None = None


class TaskResponse(BaseModel):
    id: int
    title: str
    priority: str
    due_date: str | None
    completed: bool
    created_at: datetime

    model_config = {"from_attributes": True}
