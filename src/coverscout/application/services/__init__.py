"""Application services."""

from coverscout.application.services.cover_art_service import (
    CoverArtService,
    ReleaseThumbnail,
)
from coverscout.application.services.release_resolver import ReleaseResolver
from coverscout.application.services.request_coordinator import RequestCoordinator, Ticket
from coverscout.application.services.thumbnail_cache import ThumbnailCache

__all__ = [
    "CoverArtService",
    "ReleaseResolver",
    "ReleaseThumbnail",
    "RequestCoordinator",
    "ThumbnailCache",
    "Ticket",
]
