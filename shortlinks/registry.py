"""Link Registry - persistent storage access for short links.

The registry owns every read and write against the ``short_links`` table:
create, lookups by slug / id / owner, updates, soft deletes and the atomic
access-counter increment used on redirect. Soft-deleted rows are invisible
to every lookup unless ``include_deleted=True`` is passed explicitly.

Store Operations
================
::
    ┌──────────────────────┐     INSERT           ┌────────────────┐
    │ create()             │ ───────────────────▶ │                │
    │ find_by_slug()       │     SELECT           │                │
    │ find_by_id()         │ ───────────────────▶ │  short_links   │
    │ find_by_owner()      │                      │                │
    │ update()             │     UPDATE (ORM)     │                │
    │ soft_delete()        │ ───────────────────▶ │                │
    │ increment_access_    │     UPDATE ... SET   │                │
    │ count()              │     n = n + 1        │                │
    └──────────────────────┘ ───────────────────▶ └────────────────┘

Key Behaviours
===============
- create() does not re-validate the slug; the partial unique index is the
  last-resort guard and a violation surfaces as UniqueViolationError.
- increment_access_count() is a single atomic UPDATE, so concurrent
  redirects never lose increments.
- Nothing here is ever hard-deleted.
"""

import datetime
import uuid
from collections.abc import Sequence

from prometheus_client import Counter
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from shortlinks.errors import UniqueViolationError
from shortlinks.models import ShortLink

__all__ = ["LinkRegistry"]

DATABASE_READS_TOTAL = Counter(
    "shortlinks_database_reads_total",
    "Total database read operations",
)
DATABASE_WRITES_TOTAL = Counter(
    "shortlinks_database_writes_total",
    "Total database write operations",
)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class LinkRegistry:
    """CRUD access to ``ShortLink`` rows with soft-delete semantics.

    Args:
        db: Async session used for every statement; commits happen per write
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def create(self, link: ShortLink) -> ShortLink:
        """Insert a new link.

        Raises:
            UniqueViolationError: An active link already holds ``link.slug``
        """
        try:
            self._db.add(link)
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            raise UniqueViolationError(link.slug) from exc
        DATABASE_WRITES_TOTAL.inc()
        return link

    async def find_by_slug(self, slug: str, include_deleted: bool = False) -> ShortLink | None:
        stmt = select(ShortLink).where(ShortLink.slug == slug)
        if not include_deleted:
            stmt = stmt.where(ShortLink.deleted_at.is_(None))
        # Soft-deleted rows may share a slug; prefer the newest one
        stmt = stmt.order_by(ShortLink.created_at.desc()).limit(1)
        result = await self._db.execute(stmt)
        DATABASE_READS_TOTAL.inc()
        return result.scalars().first()

    async def find_by_id(self, link_id: uuid.UUID, include_deleted: bool = False) -> ShortLink | None:
        stmt = select(ShortLink).where(ShortLink.id == link_id)
        if not include_deleted:
            stmt = stmt.where(ShortLink.deleted_at.is_(None))
        result = await self._db.execute(stmt)
        DATABASE_READS_TOTAL.inc()
        return result.scalar_one_or_none()

    async def find_by_owner(self, owner_id: str) -> Sequence[ShortLink]:
        """Active links of one owner, newest first."""
        result = await self._db.execute(
            select(ShortLink)
            .where(ShortLink.owner_id == owner_id, ShortLink.deleted_at.is_(None))
            .order_by(ShortLink.created_at.desc())
        )
        DATABASE_READS_TOTAL.inc()
        return result.scalars().all()

    async def update(self, link: ShortLink) -> ShortLink:
        link.updated_at = _utcnow()
        self._db.add(link)
        await self._db.commit()
        DATABASE_WRITES_TOTAL.inc()
        return link

    async def soft_delete(self, link: ShortLink) -> ShortLink:
        link.deleted_at = _utcnow()
        self._db.add(link)
        await self._db.commit()
        DATABASE_WRITES_TOTAL.inc()
        return link

    async def increment_access_count(self, link: ShortLink) -> int:
        """Atomically add one to the stored counter.

        Returns:
            int: The counter value after this increment
        """
        result = await self._db.execute(
            update(ShortLink)
            .where(ShortLink.id == link.id)
            .values(access_count=ShortLink.access_count + 1)
            .returning(ShortLink.access_count)
            .execution_options(synchronize_session=False)
        )
        new_count = result.scalar_one()
        await self._db.commit()
        DATABASE_WRITES_TOTAL.inc()
        # Reflect the stored value without marking the attribute dirty
        set_committed_value(link, "access_count", new_count)
        return new_count
