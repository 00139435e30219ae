"""
NoteCraft Backend: Notes Route Handlers
=========================================

What:  Owner-scoped note CRUD.

    GET    /api/notes          list (optional `q` search)
    POST   /api/notes          create
    GET    /api/notes/{id}     detail with rendered HTML
    DELETE /api/notes?id=...   delete

Every route requires the X-User-ID header (401 otherwise).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from notecraft.auth import get_current_user_id
from notecraft.database import get_db_session
from notecraft.exceptions import ValidationError
from notecraft.schemas.note import (
    DeleteResponse,
    ErrorResponse,
    NoteCreate,
    NoteDetailResponse,
    NoteListResponse,
    NoteResponse,
)
from notecraft.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={
        401: {"description": "No owner identity", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List the caller's notes",
    description=(
        "Returns the caller's notes, newest first. `q` filters case-insensitively "
        "on title, content and tags."
    ),
)
async def list_notes(
    response: Response,
    q: Optional[str] = Query(default=None, description="Search term"),
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    result = await note_service.list_notes(db=db, owner_id=owner_id, q=q)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "/notes",
    response_model=NoteResponse,
    responses={
        400: {"description": "Title or content missing", "model": ErrorResponse},
        401: {"description": "No owner identity", "model": ErrorResponse},
    },
    summary="Save a note",
)
async def create_note(
    payload: NoteCreate,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.create_note(db=db, owner_id=owner_id, payload=payload)


@router.get(
    "/notes/{note_id}",
    response_model=NoteDetailResponse,
    responses={
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Get a note with its rendered preview",
)
async def get_note(
    note_id: str,
    response: Response,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteDetailResponse:
    result = await note_service.get_note(db=db, owner_id=owner_id, note_id=note_id)
    # Notes are owner-specific and can be deleted
    response.headers["Cache-Control"] = "private, no-cache"
    return result


@router.delete(
    "/notes",
    response_model=DeleteResponse,
    responses={
        400: {"description": "Missing id", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Delete a note",
)
async def delete_note(
    id: Optional[str] = Query(default=None, description="ID of the note to delete"),
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponse:
    if not id:
        raise ValidationError(message="Parameter id is required.", field="id")
    await note_service.delete_note(db=db, owner_id=owner_id, note_id=id)
    return DeleteResponse(ok=True)
