"""Task model."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from taskmaster.clock import utcnow
from taskmaster.database import Base

PRIORITIES = ("High", "Medium", "Low")


class Task(Base):
    """A to-do item owned by one user."""

    __tablename__ = "task"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    priority = Column(String(16), nullable=False, default="Medium")  # High, Medium, Low
    due_date = Column(String(32), nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
