"""Slug generation and the advisory recency cache.

Two independent strategies produce 6-character candidates over ``[A-Za-z0-9]``:

- ``generate_primary()`` hashes a time+randomness seed and maps the hash into
  base-62 digits, re-seeding from randomness whenever the accumulator runs dry.
- ``generate_fallback()`` draws 6 uniform picks via nanoid. It is only used
  after a primary collision, so a flawed primary seed cannot collide forever.

Recency Cache Lifecycle
=======================
::
    ┌─────────────┐     add_to_cache()      ┌──────────────┐
    │  start()    │ ──────────────────────▶ │ recent slugs │
    │  (task)     │                          │  (set)       │
    └──────┬──────┘                          └──────┬───────┘
           ▼                                        │
    ┌─────────────┐   size > max?  ─── YES ──▶ clear()
    │ sleep(60s)  │ ◀──────────── NO ───────────────┘
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ shutdown()  │  cancels the sweep task
    └─────────────┘

The cache is a hint only. A miss says nothing about availability and a
wholesale clear forgets everything; the store stays the authority.
"""

import asyncio
import contextlib
import logging
import random
import string
import threading
import time

from nanoid import generate

__all__ = [
    "SLUG_LENGTH",
    "SLUG_ALPHABET",
    "DEFAULT_CACHE_MAX_SIZE",
    "DEFAULT_SWEEP_INTERVAL_SECONDS",
    "SlugGenerator",
]

SLUG_LENGTH = 6
SLUG_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
DEFAULT_CACHE_MAX_SIZE = 10_000
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0

# Refill range used when the hash accumulator reaches zero
_RESEED_SPAN = len(SLUG_ALPHABET) ** 3

logger = logging.getLogger("shortlinks.slug_generator")


def _string_hash(seed: str) -> int:
    """32-bit signed rolling hash (h * 31 + c) over the seed's code points."""
    value = 0
    for char in seed:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


class SlugGenerator:
    """Produces candidate slugs and remembers recently issued ones.

    Args:
        cache_max_size: Entry count above which the sweep clears the cache.
        sweep_interval: Seconds between two sweeps of the recency cache.
        rng: Randomness source for the primary strategy (seed and refills).
    """

    def __init__(
        self,
        cache_max_size: int = DEFAULT_CACHE_MAX_SIZE,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        rng: random.Random | None = None,
    ) -> None:
        self._cache_max_size = cache_max_size
        self._sweep_interval = sweep_interval
        self._rng = rng or random.SystemRandom()
        self._recent: set[str] = set()
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None

    # ========================================================================
    # GENERATION STRATEGIES
    # ========================================================================

    def generate_primary(self) -> str:
        seed = f"{time.time_ns() // 1_000_000}{self._rng.random()}"
        num = abs(_string_hash(seed))
        base = len(SLUG_ALPHABET)

        chars = []
        for _ in range(SLUG_LENGTH):
            num, remainder = divmod(num, base)
            chars.append(SLUG_ALPHABET[remainder])
            if num == 0:
                num = self._rng.randrange(_RESEED_SPAN)
        return "".join(chars)

    def generate_fallback(self) -> str:
        return generate(SLUG_ALPHABET, SLUG_LENGTH)

    # ========================================================================
    # RECENCY CACHE
    # ========================================================================

    def add_to_cache(self, slug: str) -> None:
        with self._lock:
            self._recent.add(slug)

    def is_in_cache(self, slug: str) -> bool:
        with self._lock:
            return slug in self._recent

    def clear(self) -> None:
        with self._lock:
            self._recent.clear()

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._recent)

    def sweep(self) -> bool:
        """Clear the whole cache once it exceeds its cap.

        Returns:
            bool: True when the cache was cleared
        """
        with self._lock:
            if len(self._recent) <= self._cache_max_size:
                return False
            dropped = len(self._recent)
            self._recent.clear()
        logger.info(f"Recency cache cleared ({dropped} slugs dropped)")
        return True

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Launch the periodic sweep on the running event loop."""
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._sweep_task = loop.create_task(self._sweep_loop(), name="slug-cache-sweep")
        logger.debug(f"Recency cache sweep started (every {self._sweep_interval}s)")

    async def shutdown(self) -> None:
        """Cancel the sweep task. Safe to call more than once."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Recency cache sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()
