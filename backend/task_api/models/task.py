import enum
import uuid
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from ..databases.database import Base
from .clock import utcnow


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def derive_completion(
    current: Mapping[str, Any],
    changes: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> dict:
    """
    Return `changes` with `completed`, `status` and `completed_at` made consistent.

    `current` is the task's state before the change (empty for a new task).
    - status given alone: completed follows it
    - completed given alone: status follows it (false only resets a
      "completed" status back to pending)
    - both given: taken as given
    - completed_at is stamped when completed becomes true and cleared when
      it becomes false; a caller-supplied completed_at is dropped
    """
    changes = dict(changes)
    changes.pop("completed_at", None)

    if "status" in changes and "completed" not in changes:
        changes["completed"] = changes["status"] == TaskStatus.COMPLETED.value
    elif "completed" in changes and "status" not in changes:
        if changes["completed"]:
            changes["status"] = TaskStatus.COMPLETED.value
        elif current.get("status") == TaskStatus.COMPLETED.value:
            changes["status"] = TaskStatus.PENDING.value

    if "completed" in changes:
        if changes["completed"]:
            if not current.get("completed") or current.get("completed_at") is None:
                changes["completed_at"] = now or utcnow()
        else:
            changes["completed_at"] = None
    return changes


# Task model
class Task(Base):
    __tablename__ = "tasks"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(String(1000))
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value)
    priority = Column(String(10), nullable=False, default=TaskPriority.MEDIUM.value)
    category = Column(String(50))
    due_date = Column(DateTime, index=True)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False)  # Связь с пользователем
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="tasks")

    __table_args__ = (Index("ix_tasks_owner_status_priority", "owner_id", "status", "priority"),)

    @classmethod
    def new(cls, owner_id: str, fields: Mapping[str, Any]) -> "Task":
        task = cls(
            owner_id=owner_id,
            status=TaskStatus.PENDING.value,
            priority=TaskPriority.MEDIUM.value,
            completed=False,
            completed_at=None,
        )
        task.apply_changes(fields)
        return task

    def apply_changes(self, changes: Mapping[str, Any]) -> None:
        current = {
            "status": self.status,
            "completed": self.completed,
            "completed_at": self.completed_at,
        }
        for key, value in derive_completion(current, changes).items():
            setattr(self, key, value)
