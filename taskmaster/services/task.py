"""Task service for per-user CRUD."""

from sqlalchemy.orm import Session

from taskmaster.models.task import PRIORITIES, Task

TITLE_MAX_LENGTH = 200


class TaskService:
    """Handles task creation, listing, updates and deletion, always scoped to one user."""

    def validate_fields(self, title: str | None = None, priority: str | None = None) -> str | None:
        """Validate task fields. Returns error message or None if valid."""
        if title is not None:
            stripped = title.strip()
            if not stripped:
                return "Title is required"
            if len(stripped) > TITLE_MAX_LENGTH:
                return f"Title cannot exceed {TITLE_MAX_LENGTH} characters"
        if priority is not None and priority not in PRIORITIES:
            return f"Invalid priority '{priority}'. Allowed: {', '.join(PRIORITIES)}"
        return None

    def create_task(
        self,
        db: Session,
        user_id: int,
        title: str,
        priority: str = "Medium",
        due_date: str | None = None,
    ) -> Task:
        task = Task(
            user_id=user_id,
            title=title.strip(),
            priority=priority,
            due_date=due_date,
            completed=False,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    def get_user_tasks(self, db: Session, user_id: int) -> list[Task]:
        """Get all tasks for a user, newest first."""
        return (
            db.query(Task)
            .filter(Task.user_id == user_id)
            .order_by(Task.created_at.desc(), Task.id.desc())
            .all()
        )

    def get_task(self, db: Session, task_id: int, user_id: int) -> Task | None:
        """Get a single task by ID, scoped to user."""
        return db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()

    def update_task(self, db: Session, task: Task, **changes) -> Task:
        """Apply the given field changes. None values are ignored."""
        for field in ("title", "priority", "due_date", "completed"):
            value = changes.get(field)
            if value is None:
                continue
            setattr(task, field, value.strip() if field == "title" else value)
        db.commit()
        db.refresh(task)
        return task

    def delete_task(self, db: Session, task: Task) -> None:
        db.delete(task)
        db.commit()
