"""Short-link Service Layer - Core Business Logic

This module composes the Slug Allocator and the Link Registry into the five
public operations of the service, enforcing ownership and authentication
rules on the way.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                    ShortLinkService                         │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │  SlugAllocator  │  │  LinkRegistry   │  │ SlugGenerator│ │
    │  │                 │  │                 │  │              │ │
    │  │ • Reserved names│  │ • CRUD          │  │ • Strategies │ │
    │  │ • Custom alias  │  │ • Soft delete   │  │ • Recency    │ │
    │  │ • Two attempts  │  │ • Atomic counter│  │   cache      │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                    │
                ▼                    ▼
    ┌─────────────────────────────────────────┐
    │        PostgreSQL (short_links)         │
    └─────────────────────────────────────────┘

Request Flow Diagrams
=====================

Create Flow
-----------
::
    ┌─────────────┐
    │ customAlias?│
    └──────┬──────┘
    YES    │      NO
    ┌──────┴──────────────┐
    ▼                     ▼
┌───────────────┐  ┌───────────────┐
│ caller set?   │  │ generate_     │
│ else 401      │  │ unique()      │
│ validate alias│  │               │
└──────┬────────┘  └──────┬────────┘
       └────────┬─────────┘
                ▼
    ┌─────────────────────┐
    │ registry.create()   │  UniqueViolation → AlreadyInUse
    └──────────┬──────────┘
               ▼
    ┌─────────────────────┐
    │ add to recency cache│
    └──────────┬──────────┘
               ▼
    ┌─────────────────────┐
    │ ShortLinkCreated    │
    └─────────────────────┘

Redirect Flow
-------------
::
    ┌─────────────┐     ┌──────────────────┐     ┌────────────────┐
    │ find_by_slug│ ──▶ │ UPDATE n = n + 1 │ ──▶ │ original URL   │
    │ (1 read)    │     │ (1 write)        │     │                │
    └─────────────┘     └──────────────────┘     └────────────────┘

Usage Examples
=============
```python
@router.post("/shorten")
async def shorten(
    payload: ShortLinkCreate,
    service: ShortLinkService = Depends(get_link_service),
    caller_id: str | None = Depends(get_optional_caller_id),
) -> ShortLinkCreated:
    return await service.create(payload.url, payload.custom_alias, caller_id)
```
"""

import asyncio
import time
import uuid
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram

from shortlinks.enums import RequestStatus
from shortlinks.errors import (
    AliasInUseError,
    ForbiddenError,
    NotFoundError,
    RareCollisionError,
    ShortLinkError,
    UnauthenticatedError,
    UniqueViolationError,
)
from shortlinks.models import ShortLink
from shortlinks.registry import LinkRegistry
from shortlinks.schemas import ShortLinkCreated, ShortLinkDetail, ShortLinkUpdated
from shortlinks.slug_allocator import SlugAllocator

if TYPE_CHECKING:
    from shortlinks.dependencies import RequestContext

__all__ = ["ShortLinkService"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "shortlinks_creation_requests_total",
    "Total short link creation requests",
    ["status"],
)
LINK_CREATION_DURATION = Histogram(
    "shortlinks_creation_duration_seconds",
    "Time taken to create short links",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
LINK_REDIRECT_REQUESTS_TOTAL = Counter(
    "shortlinks_redirect_requests_total",
    "Total redirect resolutions",
    ["status"],
)


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================

class ShortLinkService:
    """Create, list, update, delete and resolve short links.

    The service is built per request from a ``RequestContext``. It holds no
    state of its own besides the injected collaborators; the only shared
    mutable piece is the generator's advisory recency cache.

    Example:
        >>> service = ShortLinkService(ctx)
        >>> view = await service.create("https://example.com")
        >>> print(view.short_url)
    """

    def __init__(
        self,
        ctx: "RequestContext",
        registry: LinkRegistry | None = None,
        allocator: SlugAllocator | None = None,
    ) -> None:
        """Initialize service from the request context.

        Args:
            ctx: Request context with database session, settings, logger and generator
            registry: Registry override, defaults to one bound to ``ctx.database``
            allocator: Allocator override, defaults to one over ``registry``

        Raises:
            ConfigurationError: BASE_URL is not configured
        """
        self._settings = ctx.settings
        self._base_url = ctx.settings.require_base_url()
        self._timeout = ctx.settings.STORE_TIMEOUT_SECONDS
        self._logger = ctx.logger
        self._generator = ctx.slug_generator
        self._registry = registry or LinkRegistry(ctx.database)
        self._allocator = allocator or SlugAllocator(self._registry, self._generator)

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "ShortLinkService":
        return cls(ctx)

    @property
    def base_url(self) -> str:
        return self._base_url

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create(
        self,
        original_url: str,
        custom_alias: str | None = None,
        caller_id: str | None = None,
    ) -> ShortLinkCreated:
        """Shorten ``original_url``, optionally under a caller-chosen alias.

        Args:
            original_url: Absolute http/https URL, already validated by the caller
            custom_alias: Requested alias, only allowed with a caller identity
            caller_id: Authenticated owner, or None for anonymous links

        Returns:
            ShortLinkCreated: View of the persisted link

        Raises:
            UnauthenticatedError: Alias requested without a caller identity
            ReservedAliasError: Alias names a fixed application route
            AliasInUseError: Alias taken, including a lost insert race
            RareCollisionError: Both generated candidates were taken
        """
        start_time = time.perf_counter()
        try:
            async with asyncio.timeout(self._timeout):
                link = await self._create(original_url, custom_alias, caller_id)
        except RareCollisionError as exc:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Short link creation failed: {exc}")
            raise
        except ShortLinkError as exc:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            self._logger.warning(f"Short link creation failed: {exc}")
            raise
        except Exception as exc:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Short link creation error: {exc!r}")
            raise

        duration = time.perf_counter() - start_time
        LINK_CREATION_DURATION.observe(duration)
        LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Short link created: {link.slug} in {duration:.3f}s")
        return ShortLinkCreated.from_model(link, self._base_url)

    async def list_mine(self, caller_id: str) -> list[ShortLinkDetail]:
        async with asyncio.timeout(self._timeout):
            links = await self._registry.find_by_owner(caller_id)
        self._logger.debug(f"Listed {len(links)} short links for owner {caller_id}")
        return [ShortLinkDetail.from_model(link, self._base_url) for link in links]

    async def update(self, link_id: uuid.UUID, new_url: str, caller_id: str) -> ShortLinkUpdated:
        """Point an owned link at a new URL.

        Raises:
            NotFoundError: No active link has ``link_id``
            ForbiddenError: The link belongs to someone else (or to nobody)
        """
        async with asyncio.timeout(self._timeout):
            link = await self._get_owned_link(link_id, caller_id)
            link.original_url = new_url
            link = await self._registry.update(link)
        self._logger.info(f"Short link {link.slug} updated by {caller_id}")
        return ShortLinkUpdated.from_model(link, self._base_url)

    async def delete(self, link_id: uuid.UUID, caller_id: str) -> None:
        async with asyncio.timeout(self._timeout):
            link = await self._get_owned_link(link_id, caller_id)
            await self._registry.soft_delete(link)
        self._logger.info(f"Short link {link.slug} deleted by {caller_id}")

    async def redirect(self, slug: str) -> str:
        """Resolve ``slug`` to its original URL and count the access.

        One read and one write against the store, nothing more.

        Raises:
            NotFoundError: No active link holds ``slug``
        """
        async with asyncio.timeout(self._timeout):
            link = await self._registry.find_by_slug(slug)
            if link is None:
                LINK_REDIRECT_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
                self._logger.warning(f"Redirect failed - slug not found: {slug}")
                raise NotFoundError()
            await self._registry.increment_access_count(link)

        LINK_REDIRECT_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.debug(f"Redirect resolved: {slug} -> {link.original_url}")
        return link.original_url

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _create(
        self,
        original_url: str,
        custom_alias: str | None,
        caller_id: str | None,
    ) -> ShortLink:
        is_custom_alias = False
        if custom_alias:
            if not caller_id:
                raise UnauthenticatedError()
            slug = await self._allocator.validate_custom_alias(custom_alias)
            is_custom_alias = True
        else:
            slug = await self._allocator.generate_unique()

        link = ShortLink(
            original_url=original_url,
            slug=slug,
            is_custom_alias=is_custom_alias,
            access_count=0,
            owner_id=caller_id or None,
        )
        try:
            link = await self._registry.create(link)
        except UniqueViolationError as exc:
            self._logger.warning(f"Lost insert race for slug: {slug}")
            raise AliasInUseError() from exc

        self._generator.add_to_cache(slug)
        return link

    async def _get_owned_link(self, link_id: uuid.UUID, caller_id: str) -> ShortLink:
        link = await self._registry.find_by_id(link_id)
        if link is None:
            raise NotFoundError()
        if link.owner_id is None or link.owner_id != caller_id:
            self._logger.warning(f"Caller {caller_id} denied access to short link {link_id}")
            raise ForbiddenError()
        return link
