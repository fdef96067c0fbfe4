"""FastAPI route definitions for the short-link REST API.

This module binds the five service operations (plus health) to HTTP with
dependency injection and response serialization. Typed service failures are
turned into responses by the exception handlers registered in main.py.

API Endpoint Overview
=====================
::
    GET    /api/health
        └─ HealthResponse (200)

    POST   /shorten              (bearer token optional)
        ├─ ShortLinkCreate (request body)
        └─ ShortLinkCreated (201) or 401/409/422/500

    GET    /my-urls              (bearer token required)
        └─ list[ShortLinkDetail] (200)

    PUT    /my-urls/:id          (bearer token required)
        ├─ ShortLinkUpdate (request body)
        └─ ShortLinkUpdated (200) or 403/404/422

    DELETE /my-urls/:id          (bearer token required)
        └─ 204 or 403/404

    GET    /:slug
        └─ 302 Redirect or 404

Key Behaviours
===============
- All endpoints use async/await for non-blocking I/O.
- Fixed routes live under reserved names, so no slug can shadow them.
- Custom aliases are only accepted together with a valid bearer token.
- 302 redirects keep the access counter exact (one increment per hit).
"""

import uuid

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy import text

from shortlinks.auth import get_caller_id, get_optional_caller_id
from shortlinks.dependencies import RequestContext, get_link_service, get_request_context
from shortlinks.enums import HealthStatus
from shortlinks.schemas import (
    ErrorResponse,
    HealthResponse,
    ShortLinkCreate,
    ShortLinkCreated,
    ShortLinkDetail,
    ShortLinkUpdate,
    ShortLinkUpdated,
)
from shortlinks.service import ShortLinkService

__all__ = ["router"]

router = APIRouter()


@router.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=db_status, database=db_status)


@router.post(
    "/shorten",
    response_model=ShortLinkCreated,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse, "description": "Custom alias without authentication"},
        409: {"model": ErrorResponse, "description": "Alias reserved or already in use"},
    },
    tags=["links"],
)
async def shorten(
    payload: ShortLinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ShortLinkService = Depends(get_link_service),
    caller_id: str | None = Depends(get_optional_caller_id),
) -> ShortLinkCreated:
    ctx.add_tag("link_creation")
    ctx.logger.info(
        f"Short link requested: {payload.url}",
        extra={"operation": "create", "custom_alias": payload.custom_alias},
    )
    return await service.create(payload.url, payload.custom_alias, caller_id)


@router.get("/my-urls", response_model=list[ShortLinkDetail], tags=["links"])
async def my_urls(
    service: ShortLinkService = Depends(get_link_service),
    caller_id: str = Depends(get_caller_id),
) -> list[ShortLinkDetail]:
    return await service.list_mine(caller_id)


@router.put(
    "/my-urls/{link_id}",
    response_model=ShortLinkUpdated,
    responses={
        403: {"model": ErrorResponse, "description": "Link owned by someone else"},
        404: {"model": ErrorResponse, "description": "Link not found"},
    },
    tags=["links"],
)
async def update_link(
    link_id: uuid.UUID,
    payload: ShortLinkUpdate,
    service: ShortLinkService = Depends(get_link_service),
    caller_id: str = Depends(get_caller_id),
) -> ShortLinkUpdated:
    return await service.update(link_id, payload.url, caller_id)


@router.delete(
    "/my-urls/{link_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"model": ErrorResponse, "description": "Link owned by someone else"},
        404: {"model": ErrorResponse, "description": "Link not found"},
    },
    tags=["links"],
)
async def delete_link(
    link_id: uuid.UUID,
    service: ShortLinkService = Depends(get_link_service),
    caller_id: str = Depends(get_caller_id),
) -> Response:
    await service.delete(link_id, caller_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{slug}", tags=["redirect"])
async def redirect_to_url(
    slug: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ShortLinkService = Depends(get_link_service),
) -> RedirectResponse:
    ctx.add_tag("redirect")
    original_url = await service.redirect(slug)
    ctx.logger.debug(f"Redirect for {slug} served in {ctx.get_duration():.2f}ms")
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
