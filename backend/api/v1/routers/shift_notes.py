"""
Shift Notes Router — handover notes between shifts.

Only one note is active at a time: posting a new note retires the others.
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Body, Depends
from pydantic import Field
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.schemas import CamelModel, validated_changes
from core.security import Actor
from crm.derived import utcnow
from crm.field_guard import ShiftNoteField
from crm.identifiers import add_with_identifier
from crm.storage import commit_or_conflict, get_or_404
from db.models import ShiftNote, User

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/shift-notes", tags=["shift-notes"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class ShiftNoteCreate(CamelModel):
    content: str = Field(..., min_length=1)
    created_by: str | None = Field(None, min_length=1, max_length=255)


class ShiftNoteUpdate(CamelModel):
    content: str | None = Field(None, min_length=1)
    is_active: bool | None = None


class ShiftNoteResponse(CamelModel):
    id: str
    created_by: str
    content: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


async def actor_display_name(db: AsyncSession, actor: Actor) -> str:
    user = await db.get(User, actor.id)
    return user.name if user is not None else actor.email


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[ShiftNoteResponse])
async def list_shift_notes(
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """List shift notes, newest first."""
    query = select(ShiftNote)
    if active_only:
        query = query.where(ShiftNote.is_active.is_(True))
    result = await db.execute(query.order_by(ShiftNote.created_at.desc(), ShiftNote.id.desc()))
    return result.scalars().all()


@router.post("", response_model=ShiftNoteResponse, status_code=201)
async def create_shift_note(
    body: ShiftNoteCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Post a handover note and retire the previously active ones."""
    now = utcnow()
    await db.execute(
        update(ShiftNote)
        .where(ShiftNote.is_active.is_(True))
        .values(is_active=False, updated_at=now)
    )
    created_by = body.created_by or await actor_display_name(db, actor)
    message = "Shift note conflicts with existing data, please retry"
    note = await add_with_identifier(
        db,
        ShiftNote,
        lambda note_id: ShiftNote(
            id=note_id,
            created_by=created_by,
            content=body.content,
            is_active=True,
            created_at=now,
            updated_at=now,
        ),
        conflict_message=message,
    )
    await commit_or_conflict(db, message)
    await db.refresh(note)
    logger.info("shift_note.created", note_id=note.id, actor=actor.id)
    return note


@router.put("/{note_id}", response_model=ShiftNoteResponse)
async def update_shift_note(
    note_id: str,
    body: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    changes = validated_changes(ShiftNoteField, ShiftNoteUpdate, ShiftNote, body)
    note = await get_or_404(db, ShiftNote, note_id, "Shift note")
    for column, value in changes.items():
        setattr(note, column, value)
    note.updated_at = utcnow()

    await db.commit()
    await db.refresh(note)
    logger.info("shift_note.updated", note_id=note_id, fields=sorted(changes), actor=actor.id)
    return note
