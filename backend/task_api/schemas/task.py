from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import ConfigDict, StringConstraints, field_serializer, field_validator, model_validator

from ..models.clock import to_naive_utc, utcnow
from ..models.task import TaskPriority, TaskStatus
from .base import CamelModel, as_utc

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=200)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]
Category = Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]

# May be left out, but not sent as null
_NOT_NULLABLE = ("title", "status", "priority", "completed", "description", "category")


class TaskBase(CamelModel):
    model_config = ConfigDict(use_enum_values=True)

    description: Optional[Description] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category: Optional[Category] = None
    due_date: Optional[datetime] = None
    completed: Optional[bool] = None

    @field_validator(*_NOT_NULLABLE, mode="before", check_fields=False)
    @classmethod
    def reject_null(cls, value: Any, info) -> Any:
        if value is None:
            raise ValueError(f"{info.field_name.capitalize()} cannot be null")
        return value

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None


class TaskCreate(TaskBase):
    title: Title

    @field_validator("due_date")
    @classmethod
    def due_date_not_past(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and to_naive_utc(value) < utcnow():
            raise ValueError("Due date cannot be in the past")
        return value


class TaskUpdate(TaskBase):
    title: Optional[Title] = None

    @model_validator(mode="after")
    def at_least_one_field(self) -> "TaskUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class OwnerSummary(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class Task(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    category: Optional[str] = None
    due_date: Optional[datetime] = None
    completed: bool
    completed_at: Optional[datetime] = None
    owner: OwnerSummary
    created_at: datetime
    updated_at: datetime

    @field_serializer("due_date", "completed_at", "created_at", "updated_at")
    def utc(self, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class TaskDetail(CamelModel):
    task: Task


class TaskMessage(CamelModel):
    message: str
    task: Task


class TaskFilters(CamelModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    completed: Optional[bool] = None
    due_before: Optional[datetime] = None
    due_after: Optional[datetime] = None
    search: Optional[str] = None


class TaskList(CamelModel):
    tasks: List[Task]
    count: int
    filters: TaskFilters


class PriorityCount(CamelModel):
    priority: str
    count: int


class CategoryCount(CamelModel):
    category: str
    count: int


class UserCount(CamelModel):
    user_id: str
    name: str
    email: str
    count: int


class TaskStats(CamelModel):
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    by_priority: List[PriorityCount]
    by_category: List[CategoryCount]
    by_user: List[UserCount]


class PurgeResult(CamelModel):
    message: str
    deleted_count: int


class Message(CamelModel):
    message: str
