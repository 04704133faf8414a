"""
Tasks Router — follow-ups, deliveries, call backs and meetings.
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Body, Depends
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.schemas import CamelModel, MessageResponse, UTCDateTime, validated_changes
from core.security import Actor
from crm.constants import TaskLink, TaskStatus, TaskType
from crm.derived import utcnow
from crm.field_guard import TaskField
from crm.identifiers import add_with_identifier
from crm.storage import commit_or_conflict, get_or_404
from db.models import Task

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class TaskCreate(CamelModel):
    type: TaskType
    linked_to: TaskLink
    linked_id: str = Field(..., min_length=1, max_length=50)
    customer_name: str = Field(..., min_length=1, max_length=255)
    due_date: UTCDateTime
    status: TaskStatus = TaskStatus.PENDING
    assigned_to: str = Field(..., min_length=1, max_length=255)
    remarks: str | None = None


class TaskUpdate(CamelModel):
    type: TaskType | None = None
    linked_to: TaskLink | None = None
    linked_id: str | None = Field(None, min_length=1, max_length=50)
    customer_name: str | None = Field(None, min_length=1, max_length=255)
    due_date: UTCDateTime | None = None
    status: TaskStatus | None = None
    assigned_to: str | None = Field(None, min_length=1, max_length=255)
    remarks: str | None = None


class TaskResponse(CamelModel):
    id: str
    type: str
    linked_to: str
    linked_id: str
    customer_name: str
    due_date: datetime
    status: str
    assigned_to: str
    remarks: str | None
    created_at: datetime
    updated_at: datetime


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    status: TaskStatus | None = None,
    assigned_to: str | None = None,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """List tasks by due date."""
    query = select(Task)
    if status:
        query = query.where(Task.status == status.value)
    if assigned_to:
        query = query.where(Task.assigned_to == assigned_to)
    result = await db.execute(query.order_by(Task.due_date.asc()))
    return result.scalars().all()


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    body: TaskCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    message = "Task conflicts with existing data, please retry"
    values = body.model_dump()
    task = await add_with_identifier(db, Task, lambda task_id: Task(id=task_id, **values), conflict_message=message)
    await commit_or_conflict(db, message)
    await db.refresh(task)
    logger.info("task.created", task_id=task.id, type=task.type, actor=actor.id)
    return task


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    body: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    changes = validated_changes(TaskField, TaskUpdate, Task, body)
    task = await get_or_404(db, Task, task_id, "Task")
    for column, value in changes.items():
        setattr(task, column, value)
    task.updated_at = utcnow()

    await commit_or_conflict(db, "Task update conflicts with existing data")
    await db.refresh(task)
    logger.info("task.updated", task_id=task_id, fields=sorted(changes), actor=actor.id)
    return task


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Mark a task Done."""
    task = await get_or_404(db, Task, task_id, "Task")
    task.status = TaskStatus.DONE.value
    task.updated_at = utcnow()
    await db.commit()
    await db.refresh(task)
    logger.info("task.completed", task_id=task_id, actor=actor.id)
    return task


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    task = await get_or_404(db, Task, task_id, "Task")
    await db.delete(task)
    await db.commit()
    logger.info("task.deleted", task_id=task_id, actor=actor.id)
    return MessageResponse(message="Task deleted successfully")
