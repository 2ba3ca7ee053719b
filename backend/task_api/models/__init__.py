from .task import Task, TaskPriority, TaskStatus
from .user import Role, User

__all__ = ["Role", "Task", "TaskPriority", "TaskStatus", "User"]
