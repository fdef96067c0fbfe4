"""SQLAlchemy ORM models for the short-link service.

This module defines the database schema using SQLAlchemy declarative models
with soft-delete aware indexing and timestamp management for short links.

Data Model Layout
=================
::
    short_links table
    ├─ id (UUID PRIMARY KEY)
    ├─ original_url (VARCHAR(2048) NOT NULL)
    ├─ slug (VARCHAR(30) NOT NULL, INDEXED)
    ├─ is_custom_alias (BOOLEAN DEFAULT FALSE)
    ├─ access_count (INTEGER DEFAULT 0)
    ├─ owner_id (VARCHAR(64) NULL, INDEXED)
    ├─ created_at (TIMESTAMPTZ)
    ├─ updated_at (TIMESTAMPTZ)
    └─ deleted_at (TIMESTAMPTZ NULL)

    uq_short_links_active_slug
    └─ UNIQUE (slug) WHERE deleted_at IS NULL

How to Use
===========
**Step 1 — Import**::
    from shortlinks.models import ShortLink

**Step 2 — Create a new link**::
    link = ShortLink(slug="aB3xZ9", original_url="https://example.com")
    db.add(link)
    await db.commit()

**Step 3 — Query active links**::
    result = await db.execute(
        select(ShortLink).where(ShortLink.slug == "aB3xZ9", ShortLink.deleted_at.is_(None))
    )
    link = result.scalar_one_or_none()

Key Behaviours
===============
- Only one non-deleted row may hold a given slug; soft-deleted rows keep theirs.
- owner_id is NULL for anonymously created links.
- access_count starts at 0 and only ever grows.
- Rows are never hard-deleted; deleted_at marks them inactive.

Classes:
    ShortLink:  A shortened URL with ownership, alias flag and access counter.
"""

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from shortlinks.database import Base

__all__ = ["ShortLink", "ORIGINAL_URL_MAX_LENGTH", "SLUG_MAX_LENGTH"]

ORIGINAL_URL_MAX_LENGTH = 2048
SLUG_MAX_LENGTH = 30


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ShortLink(Base):
    __tablename__ = "short_links"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    original_url: Mapped[str] = mapped_column(String(ORIGINAL_URL_MAX_LENGTH), nullable=False)
    slug: Mapped[str] = mapped_column(String(SLUG_MAX_LENGTH), index=True, nullable=False)
    is_custom_alias: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    access_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    owner_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    deleted_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    __table_args__ = (
        Index(
            "uq_short_links_active_slug",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, slug='{self.slug}', access_count={self.access_count})>"
