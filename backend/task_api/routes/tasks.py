import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..databases.database import get_db
from ..models.clock import to_naive_utc
from ..models.task import Task, TaskPriority, TaskStatus
from ..models.user import User
from ..schemas.task import (
    CategoryCount,
    Message,
    PriorityCount,
    PurgeResult,
    TaskCreate,
    TaskDetail,
    TaskFilters,
    TaskList,
    TaskMessage,
    TaskStats,
    TaskUpdate,
    UserCount,
)
from ..schemas.task import Task as TaskSchema
from ..utils.dependencies import admin_only, get_current_identity, get_owned_task
from ..utils.errors import InternalFailure, ValidationFailed
from ..utils.security import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

SORT_FIELDS = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "dueDate": Task.due_date,
    "completedAt": Task.completed_at,
    "title": Task.title,
    "priority": Task.priority,
    "status": Task.status,
    "category": Task.category,
}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# Admin routes come first so "/stats" and "/admin" are not taken for task ids

@router.get(
    "/stats/overview",
    response_model=TaskStats,
    dependencies=[Depends(get_current_identity), Depends(admin_only)],
)
def get_stats(db: Session = Depends(get_db)):
    try:
        total = db.query(func.count(Task.id)).scalar()
        completed = db.query(func.count(Task.id)).filter(Task.completed.is_(True)).scalar()
        pending = db.query(func.count(Task.id)).filter(Task.completed.is_(False)).scalar()

        by_priority = db.query(Task.priority, func.count(Task.id)) \
            .group_by(Task.priority) \
            .order_by(Task.priority).all()

        by_category = db.query(Task.category, func.count(Task.id)) \
            .filter(Task.category.isnot(None), Task.category != "") \
            .group_by(Task.category) \
            .order_by(Task.category).all()

        by_user = db.query(User.id, User.name, User.email, func.count(Task.id)) \
            .join(Task, Task.owner_id == User.id) \
            .group_by(User.id, User.name, User.email) \
            .order_by(User.email).all()
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch statistics")
        raise InternalFailure("Failed to fetch statistics", str(exc))

    return TaskStats(
        total_tasks=total,
        completed_tasks=completed,
        pending_tasks=pending,
        by_priority=[PriorityCount(priority=p, count=c) for p, c in by_priority],
        by_category=[CategoryCount(category=cat, count=c) for cat, c in by_category],
        by_user=[UserCount(user_id=uid, name=name, email=email, count=c) for uid, name, email, c in by_user],
    )


@router.delete(
    "/admin/purge-completed",
    response_model=PurgeResult,
    dependencies=[Depends(get_current_identity), Depends(admin_only)],
)
def purge_completed(db: Session = Depends(get_db)):
    try:
        deleted = db.query(Task) \
            .filter(Task.completed.is_(True)) \
            .delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to purge tasks")
        raise InternalFailure("Failed to purge tasks", str(exc))

    logger.info("Purged %d completed tasks", deleted)
    return PurgeResult(message="Completed tasks purged successfully", deleted_count=deleted)


@router.get("", response_model=TaskList)
def get_all_tasks(
        status_: Optional[TaskStatus] = Query(None, alias="status"),
        priority: Optional[TaskPriority] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        completed: Optional[bool] = None,
        due_before: Optional[datetime] = Query(None, alias="dueBefore"),
        due_after: Optional[datetime] = Query(None, alias="dueAfter"),
        sort: str = "createdAt",
        order: Literal["asc", "desc"] = "desc",
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity)
):
    if sort not in SORT_FIELDS:
        raise ValidationFailed([f"Sort must be one of: {', '.join(SORT_FIELDS)}"])

    query = db.query(Task).options(joinedload(Task.owner))

    # Non-admins only ever see their own tasks
    if not identity.is_admin:
        query = query.filter(Task.owner_id == identity.id)

    if status_ is not None:
        query = query.filter(Task.status == status_.value)
    if priority is not None:
        query = query.filter(Task.priority == priority.value)
    if category:
        query = query.filter(Task.category == category)
    if completed is not None:
        query = query.filter(Task.completed.is_(completed))
    if due_before is not None:
        query = query.filter(Task.due_date <= to_naive_utc(due_before))
    if due_after is not None:
        query = query.filter(Task.due_date >= to_naive_utc(due_after))
    if search:
        pattern = f"%{_escape_like(search)}%"
        query = query.filter(or_(
            Task.title.ilike(pattern, escape="\\"),
            Task.description.ilike(pattern, escape="\\"),
        ))

    column = SORT_FIELDS[sort]
    query = query.order_by(column.asc() if order == "asc" else column.desc())

    try:
        tasks = [TaskSchema.model_validate(t) for t in query.all()]
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch tasks")
        raise InternalFailure("Failed to fetch tasks", str(exc))

    return TaskList(
        tasks=tasks,
        count=len(tasks),
        filters=TaskFilters(
            status=status_.value if status_ else None,
            priority=priority.value if priority else None,
            category=category,
            completed=completed,
            due_before=due_before,
            due_after=due_after,
            search=search,
        ),
    )


@router.get("/{task_id}", response_model=TaskDetail)
def get_task(
        task_id: str,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity)
):
    try:
        task = get_owned_task(db, task_id, identity)
        return TaskDetail(task=TaskSchema.model_validate(task))
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch task %s", task_id)
        raise InternalFailure("Failed to fetch task", str(exc))


@router.post("", response_model=TaskMessage, status_code=status.HTTP_201_CREATED)
def create_task(
        payload: TaskCreate,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity)
):
    # Owner always comes from the token, never from the body
    new_task = Task.new(identity.id, payload.model_dump(exclude_unset=True))
    try:
        db.add(new_task)
        db.commit()
        db.refresh(new_task)
        result = TaskMessage(message="Task created successfully", task=TaskSchema.model_validate(new_task))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create task")
        raise InternalFailure("Failed to create task", str(exc))

    logger.info("User %s created task %s", identity.id, new_task.id)
    return result


@router.put("/{task_id}", response_model=TaskMessage)
def update_task(
        task_id: str,
        task_data: TaskUpdate,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity)
):
    try:
        task = get_owned_task(db, task_id, identity)
        task.apply_changes(task_data.model_dump(exclude_unset=True))
        db.commit()
        db.refresh(task)
        return TaskMessage(message="Task updated successfully", task=TaskSchema.model_validate(task))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update task %s", task_id)
        raise InternalFailure("Failed to update task", str(exc))


@router.delete("/{task_id}", response_model=Message)
def delete_task(
        task_id: str,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity)
):
    try:
        task = get_owned_task(db, task_id, identity)
        db.delete(task)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to delete task %s", task_id)
        raise InternalFailure("Failed to delete task", str(exc))

    logger.info("User %s deleted task %s", identity.id, task_id)
    return Message(message="Task deleted successfully")
