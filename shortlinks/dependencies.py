"""Dependency injection with an application-scoped service manager.

This module provides a centralized way to inject the database session and the
shared resources (settings, logger, database engine, slug generator) into
every endpoint. The service manager is owned by one FastAPI application
instance, so separate apps (and separate tests) never share a database
engine, a recency cache or a sweep task.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.config import Settings, get_settings
from shortlinks.database import build_engine, build_session_factory, get_db
from shortlinks.service import ShortLinkService
from shortlinks.slug_generator import SlugGenerator


# ============================================================================
# APPLICATION SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Shared resources for one application instance.

    Resources that don't need to be created per request live here: settings,
    the configured logger, the database engine with its session factory and
    the slug generator with its sweep task.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        self.slug_generator = SlugGenerator(
            cache_max_size=self.settings.SLUG_CACHE_MAX_SIZE,
            sweep_interval=self.settings.SLUG_CACHE_SWEEP_INTERVAL_SECONDS,
        )
        self.engine = build_engine(self.settings)
        self.session_factory = build_session_factory(self.engine)
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Validate configuration and start background work.

        Raises:
            ConfigurationError: BASE_URL is not configured
        """
        if self._initialized:
            return
        self.settings.require_base_url()
        self.slug_generator.start()
        self._initialized = True
        self.logger.info(f"{self.settings.APP_NAME} started ({self.settings.APP_ENV})")

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger("shortlinks")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(getattr(logging, self.settings.LOG_LEVEL.upper(), logging.INFO))
        return logger

    async def cleanup(self) -> None:
        """Stop background work at shutdown."""
        await self.slug_generator.shutdown()
        if self._initialized:
            self.logger.info(f"{self.settings.APP_NAME} stopped")
        self._initialized = False


# ============================================================================
# PER-REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """What one request carries into the service layer.

    Only ``database`` is per request; settings, logger and the slug generator
    are read through ``service_manager``. The remaining fields tag log lines.
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)
    tags: list[str] = field(default_factory=list)

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def slug_generator(self) -> SlugGenerator:
        return self.service_manager.slug_generator

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger, tagged with request id, client and tags."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Milliseconds since the context was built."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_service_manager(request: Request) -> ServiceManager:
    return request.app.state.service_manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

    return RequestContext(
        database=db,
        service_manager=manager,
        request_id=request_id,
        user_agent=user_agent,
        client_ip=client_ip,
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> ShortLinkService:
    return ShortLinkService.from_context(ctx)
