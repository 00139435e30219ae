"""
NoteCraft Backend: Note Service
=================================

What:  Business logic for saved notes: create, list/search, fetch with
       rendered preview, delete. Every operation is scoped to one owner.
Who:   Called by the /api/notes route handlers.

Design Decision:
    NoteService is stateless: the database session is passed into each call,
    so tests can hand in a mocked session and each request keeps its own
    transaction.

Search:
    `q` matches case-insensitively against title, content and any tag.
    Filtering happens after the owner-scoped query, which keeps it identical
    on PostgreSQL and SQLite (tags are a JSON column).
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from notecraft.exceptions import DatabaseError, NoteCraftError, NotFoundError, ValidationError
from notecraft.models.note import Note
from notecraft.schemas.note import (
    NoteCreate,
    NoteDetailResponse,
    NoteListResponse,
    NoteResponse,
)
from notecraft.services.markup import render

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Both title and content are required."


def matches_query(note: Note, q: str) -> bool:
    needle = q.lower()
    return (
        needle in (note.title or "").lower()
        or needle in (note.content or "").lower()
        or any(needle in tag.lower() for tag in (note.tags or []))
    )


def _parse_note_id(note_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(note_id))
    except ValueError:
        return None


class NoteService:
    """
    Owner-scoped CRUD for notes.

    Error Handling Strategy:
        Application exceptions (ValidationError, NotFoundError) propagate as-is;
        anything else raised by the database is wrapped in DatabaseError so no
        SQL reaches the client.
    """

    async def create_note(self, db: AsyncSession, owner_id: str, payload: NoteCreate) -> NoteResponse:
        """
        Persist a new note.

        Raises:
            ValidationError: title or content missing or blank (→ 400)
            DatabaseError: insert failed (→ 500)
        """
        title = (payload.title or "").strip()
        content = payload.content or ""
        if not title or not content.strip():
            raise ValidationError(
                message=REQUIRED_FIELDS_MESSAGE,
                field="title" if not title else "content",
            )

        note = Note(
            id=uuid.uuid4(),
            owner_id=owner_id,
            title=title,
            content=content,
            tags=list(payload.tags),
            created_at=datetime.now(timezone.utc),
        )

        try:
            db.add(note)
            await db.flush()
        except Exception as e:
            logger.error("Database error creating note for %s: %s", owner_id, str(e))
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"owner_id": owner_id, "original_error": type(e).__name__},
            )

        logger.info("Note %s created for %s (%d chars)", note.id, owner_id, len(content))
        return NoteResponse.model_validate(note)

    async def list_notes(
        self,
        db: AsyncSession,
        owner_id: str,
        q: Optional[str] = None,
    ) -> NoteListResponse:
        """The owner's notes, newest first, optionally filtered by `q`."""
        try:
            result = await db.execute(
                select(Note)
                .where(Note.owner_id == owner_id)
                .order_by(desc(Note.created_at))
            )
            notes: List[Note] = list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing notes for %s: %s", owner_id, str(e))
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"owner_id": owner_id},
            )

        query = (q or "").strip()
        if query:
            notes = [note for note in notes if matches_query(note, query)]

        return NoteListResponse(
            notes=[NoteResponse.model_validate(note) for note in notes],
            total_count=len(notes),
        )

    async def _get_owned(self, db: AsyncSession, owner_id: str, note_id: str) -> Note:
        parsed_id = _parse_note_id(note_id)
        if parsed_id is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))

        try:
            result = await db.execute(
                select(Note).where(Note.id == parsed_id, Note.owner_id == owner_id)
            )
            note = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": str(note_id)},
            )

        # Someone else's note is reported exactly like a missing one
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def get_note(self, db: AsyncSession, owner_id: str, note_id: str) -> NoteDetailResponse:
        """
        Fetch one note with its rendered HTML preview.

        Raises:
            NotFoundError: missing, malformed id, or owned by someone else (→ 404)
        """
        note = await self._get_owned(db, owner_id, note_id)
        base = NoteResponse.model_validate(note)
        return NoteDetailResponse(**base.model_dump(), html=render(note.content))

    async def delete_note(self, db: AsyncSession, owner_id: str, note_id: str) -> None:
        """
        Delete one of the owner's notes.

        Raises:
            NotFoundError: as for get_note
            DatabaseError: delete failed
        """
        note = await self._get_owned(db, owner_id, note_id)
        try:
            await db.delete(note)
            await db.flush()
        except NoteCraftError:
            raise
        except Exception as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": str(note_id)},
            )
        logger.info("Note %s deleted by %s", note_id, owner_id)


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
