"""Image processing."""

from coverscout.infrastructure.imaging.thumbnail_codec import PillowThumbnailCodec

__all__ = ["PillowThumbnailCodec"]
