"""Typed failures raised by the short-link core.

Every expected failure derives from ``ShortLinkError`` and carries a stable
``error_code`` plus the HTTP status the transport layer should answer with.
Unexpected store or infrastructure errors are never wrapped.
"""

__all__ = [
    "ShortLinkError",
    "UnauthenticatedError",
    "ReservedAliasError",
    "AliasInUseError",
    "RareCollisionError",
    "NotFoundError",
    "ForbiddenError",
    "ConfigurationError",
    "UniqueViolationError",
]


class ShortLinkError(Exception):
    """Base class for expected short-link failures."""

    error_code: str = "short_link_error"
    status_code: int = 500
    default_message: str = "Short link operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class UnauthenticatedError(ShortLinkError):
    error_code = "unauthenticated"
    status_code = 401
    default_message = "Custom aliases require authentication"


class ReservedAliasError(ShortLinkError):
    error_code = "reserved"
    status_code = 409
    default_message = "This alias is a reserved route"


class AliasInUseError(ShortLinkError):
    error_code = "already_in_use"
    status_code = 409
    default_message = "This alias is already in use"


class RareCollisionError(ShortLinkError):
    error_code = "rare_collision"
    status_code = 500
    default_message = "Extremely rare slug collision detected, check the slug generator"


class NotFoundError(ShortLinkError):
    error_code = "not_found"
    status_code = 404
    default_message = "Short link not found"


class ForbiddenError(ShortLinkError):
    error_code = "forbidden"
    status_code = 403
    default_message = "You are not allowed to modify this short link"


class ConfigurationError(ShortLinkError):
    error_code = "configuration_error"
    status_code = 500
    default_message = "Service is misconfigured"


class UniqueViolationError(Exception):
    """The store rejected a write because an active link already holds the slug."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"Slug '{slug}' violates the active-slug uniqueness constraint")
        self.slug = slug
