"""Pydantic schemas for request/response validation in the short-link service.

This module defines Pydantic models for API input validation and the typed
views returned by each service operation. JSON field names are camelCase.

Schema Hierarchy
=================
::
    ShortLinkCreate (Input)
    ├─ url: str (absolute http/https, <= 2048 chars)
    └─ customAlias: str | None (3-30 chars of [A-Za-z0-9_-])

    ShortLinkUpdate (Input)
    └─ url: str

    ShortLinkCreated (Output of create)
    ├─ id, originalUrl, shortUrl, slug, accessCount, createdAt

    ShortLinkDetail (Output of list-mine)
    ├─ ShortLinkCreated fields
    ├─ isCustomAlias: bool
    └─ updatedAt: datetime

    ShortLinkUpdated (Output of update)
    └─ id, originalUrl, shortUrl, slug, accessCount, updatedAt

    HealthResponse (Output)
    ├─ status
    └─ database

Key Behaviours
===============
- URL validation uses the validators library for RFC compliance.
- Custom aliases keep their case here; the core lowercases them.
- Views are built from ORM rows plus the configured base URL.

Classes:
    ShortLinkCreate:  Input schema for creation requests.
    ShortLinkUpdate:  Input schema for update requests.
    ShortLinkCreated:  View returned by create.
    ShortLinkDetail:  View returned by list-mine.
    ShortLinkUpdated:  View returned by update.
    ErrorResponse:  Body of typed failures.
    HealthResponse:  Output schema for health checks.
"""

import datetime
import re
import uuid

import validators
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from shortlinks.enums import HealthStatus
from shortlinks.models import ORIGINAL_URL_MAX_LENGTH, SLUG_MAX_LENGTH, ShortLink

__all__ = [
    "ShortLinkCreate",
    "ShortLinkUpdate",
    "ShortLinkCreated",
    "ShortLinkDetail",
    "ShortLinkUpdated",
    "ErrorResponse",
    "HealthResponse",
    "build_short_url",
]

CUSTOM_ALIAS_MIN_LENGTH = 3
CUSTOM_ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
ALLOWED_URL_SCHEMES = ("http://", "https://")


def build_short_url(base_url: str, slug: str) -> str:
    return f"{base_url.rstrip('/')}/{slug}"


def _validate_original_url(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("URL must not be empty")
    if len(v) > ORIGINAL_URL_MAX_LENGTH:
        raise ValueError(f"URL must be at most {ORIGINAL_URL_MAX_LENGTH} characters")
    if not v.lower().startswith(ALLOWED_URL_SCHEMES) or not validators.url(v):
        raise ValueError("URL must be valid and start with http:// or https://")
    return v


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShortLinkCreate(_CamelModel):
    url: str
    custom_alias: str | None = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_original_url(v)

    @field_validator("custom_alias")
    @classmethod
    def validate_custom_alias(cls, v: str | None) -> str | None:
        if v is not None:
            if len(v) < CUSTOM_ALIAS_MIN_LENGTH or len(v) > SLUG_MAX_LENGTH:
                raise ValueError(
                    f"Custom alias must be between {CUSTOM_ALIAS_MIN_LENGTH} and {SLUG_MAX_LENGTH} characters"
                )
            if not CUSTOM_ALIAS_PATTERN.match(v):
                raise ValueError("Custom alias may only contain letters, digits, hyphens and underscores")
        return v


class ShortLinkUpdate(_CamelModel):
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_original_url(v)


class ShortLinkCreated(_CamelModel):
    id: uuid.UUID
    original_url: str
    short_url: str
    slug: str
    access_count: int
    created_at: datetime.datetime

    @classmethod
    def from_model(cls, link: ShortLink, base_url: str) -> "ShortLinkCreated":
        return cls(
            id=link.id,
            original_url=link.original_url,
            short_url=build_short_url(base_url, link.slug),
            slug=link.slug,
            access_count=link.access_count,
            created_at=link.created_at,
        )


class ShortLinkDetail(ShortLinkCreated):
    is_custom_alias: bool
    updated_at: datetime.datetime

    @classmethod
    def from_model(cls, link: ShortLink, base_url: str) -> "ShortLinkDetail":
        return cls(
            id=link.id,
            original_url=link.original_url,
            short_url=build_short_url(base_url, link.slug),
            slug=link.slug,
            access_count=link.access_count,
            is_custom_alias=link.is_custom_alias,
            created_at=link.created_at,
            updated_at=link.updated_at,
        )


class ShortLinkUpdated(_CamelModel):
    id: uuid.UUID
    original_url: str
    short_url: str
    slug: str
    access_count: int
    updated_at: datetime.datetime

    @classmethod
    def from_model(cls, link: ShortLink, base_url: str) -> "ShortLinkUpdated":
        return cls(
            id=link.id,
            original_url=link.original_url,
            short_url=build_short_url(base_url, link.slug),
            slug=link.slug,
            access_count=link.access_count,
            updated_at=link.updated_at,
        )


class ErrorResponse(BaseModel):
    detail: str
    error_code: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
