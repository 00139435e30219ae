"""
NoteCraft Backend: Note SQLAlchemy Model
==========================================

What:  ORM model for the `notes` table.
How:   Generic SQLAlchemy types (Uuid, DateTime(timezone=True), JSON) so the
       same model runs on PostgreSQL and on SQLite in tests.

Table Design:
    - id:        UUID primary key, generated client-side
    - owner_id:  identity supplied by the session layer; every query filters on it
    - content:   raw note text (markdown-ish); rendered on read, never stored as HTML
    - tags:      JSON list of strings
    - created_at UTC with timezone

    Index on (owner_id, created_at DESC) serves "my notes, newest first".
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notecraft.database import Base


class Note(Base):
    """A saved note belonging to one owner."""

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="User id from the upstream session layer",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_notes_owner_created_at", owner_id, created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, owner_id='{self.owner_id}', title='{self.title}')>"
