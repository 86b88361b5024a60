"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - use a specific subclass so callers can catch
    # precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundError(DomainException):
    """Raised when a persisted row that must exist is missing.

    Used by ``ICoverStore.update_thumbnail()`` when no cover row exists for the
    release id. Lookups that merely miss return ``None`` / a "not found" record instead.
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainException):
    """Input validation failed.

    The only error kind that escapes the public lookup operations - everything else
    is absorbed and turned into an empty/expirable result.

    Example:
        raise ValidationError("release_id cannot be blank")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Example:
        raise ConfigurationError("Unknown cover supplier 'lastfm'")
    """

    pass


class ExternalServiceError(DomainException):
    """External service (MusicBrainz, Cover Art Archive) failed.

    These are TRANSIENT by definition here: the caller caches a negative result with
    the short error window and tries again later. Never propagated to callers of the
    public API.
    """

    def __init__(
        self,
        message: str,
        service: str,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.http_status = http_status  # None for transport/parse errors


class MusicBrainzError(ExternalServiceError):
    """MusicBrainz search failed (transport error, non-200 status or unparsable XML)."""

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(message, service="musicbrainz", http_status=http_status)


class CoverArtArchiveError(ExternalServiceError):
    """Cover Art Archive download failed."""

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(message, service="coverartarchive", http_status=http_status)


__all__ = [
    "DomainException",
    "EntityNotFoundError",
    "ValidationError",
    "ConfigurationError",
    "ExternalServiceError",
    "MusicBrainzError",
    "CoverArtArchiveError",
]
