"""Slug Allocator - turns generation requests into unique, non-reserved slugs.

Flow Diagram — generate_unique()
================================
::
    ┌─────────────────┐
    │ generate_primary│
    └────────┬────────┘
             ▼
    ┌─────────────────┐  free   ┌──────────┐
    │  store lookup   │ ──────▶ │ return   │
    └────────┬────────┘         └──────────┘
        taken│
             ▼
    ┌─────────────────┐
    │generate_fallback│
    └────────┬────────┘
             ▼
    ┌─────────────────┐  free   ┌──────────┐
    │  store lookup   │ ──────▶ │ return   │
    └────────┬────────┘         └──────────┘
        taken│
             ▼
    ┌─────────────────┐
    │ RareCollision   │  (alert, never retried further)
    └─────────────────┘

Key Behaviours
===============
- At most two candidates and two store queries per allocation.
- Every candidate is checked against the store, recently issued or not.
- Reserved names are compared case-insensitively.
- validate_custom_alias() is check-then-act; the store's partial unique
  index settles races at insert time.
"""

import logging

from prometheus_client import Counter

from shortlinks.errors import AliasInUseError, RareCollisionError, ReservedAliasError
from shortlinks.registry import LinkRegistry
from shortlinks.slug_generator import SlugGenerator

__all__ = ["RESERVED_SLUGS", "SlugAllocator", "is_reserved_slug"]

# Slugs that would shadow fixed application routes
RESERVED_SLUGS: frozenset[str] = frozenset({"api", "auth", "docs", "shorten", "my-urls"})

SLUG_RARE_COLLISIONS_TOTAL = Counter(
    "shortlinks_slug_rare_collisions_total",
    "Allocations where both the primary and the fallback slug were already taken",
)
SLUG_PRIMARY_COLLISIONS_TOTAL = Counter(
    "shortlinks_slug_primary_collisions_total",
    "Allocations that needed the fallback strategy",
)

logger = logging.getLogger("shortlinks.slug_allocator")


def is_reserved_slug(slug: str, reserved: frozenset[str] = RESERVED_SLUGS) -> bool:
    return slug.lower() in reserved


class SlugAllocator:
    def __init__(
        self,
        registry: LinkRegistry,
        generator: SlugGenerator,
        reserved: frozenset[str] = RESERVED_SLUGS,
    ) -> None:
        self._registry = registry
        self._generator = generator
        self._reserved = reserved

    async def validate_custom_alias(self, alias: str) -> str:
        """Check a caller-supplied alias and return its stored (lowercase) form.

        Raises:
            ReservedAliasError: The alias names a fixed application route
            AliasInUseError: An active link already uses the alias
        """
        slug = alias.lower()
        if is_reserved_slug(slug, self._reserved):
            raise ReservedAliasError()

        existing = await self._registry.find_by_slug(slug)
        if existing is not None:
            raise AliasInUseError()
        return slug

    async def generate_unique(self) -> str:
        """Return a slug no active link holds.

        Raises:
            RareCollisionError: Both the primary and the fallback candidate were taken
        """
        slug = self._generator.generate_primary()
        if await self._is_available(slug):
            return slug

        SLUG_PRIMARY_COLLISIONS_TOTAL.inc()
        logger.warning(f"Primary slug collision on '{slug}', trying fallback strategy")

        slug = self._generator.generate_fallback()
        if await self._is_available(slug):
            return slug

        SLUG_RARE_COLLISIONS_TOTAL.inc()
        logger.error(f"Fallback slug collision on '{slug}', check the slug generator")
        raise RareCollisionError()

    async def _is_available(self, slug: str) -> bool:
        if is_reserved_slug(slug, self._reserved):
            return False
        if self._generator.is_in_cache(slug):
            # Recency hint only; the store decides
            logger.debug(f"Candidate '{slug}' was issued recently, confirming with the store")
        return await self._registry.find_by_slug(slug) is None
