"""Pillow based thumbnail codec."""

import asyncio
import logging
from io import BytesIO

from PIL import Image as PILImage

from coverscout.config.settings import ThumbnailSettings
from coverscout.domain.entities import Thumbnail
from coverscout.domain.ports import IThumbnailCodec

logger = logging.getLogger(__name__)

# Formats we hand out as-is, everything else is re-encoded as JPEG
_PASSTHROUGH_FORMATS = {"JPEG": "image/jpeg", "PNG": "image/png"}


class PillowThumbnailCodec(IThumbnailCodec):
    """Scales covers down into the configured envelope (640x480 by default).

    Hey future me - covers are only ever scaled DOWN, aspect ratio kept. A JPEG or PNG
    that already fits is returned byte for byte, no pointless re-encoding.
    """

    def __init__(self, settings: ThumbnailSettings) -> None:
        self.settings = settings

    def _process_sync(self, cover: bytes) -> Thumbnail:
        """Sync processing (runs in thread pool)."""
        max_size = (self.settings.max_width, self.settings.max_height)
        with PILImage.open(BytesIO(cover)) as img:
            source_format = (img.format or "").upper()
            fits = img.width <= max_size[0] and img.height <= max_size[1]
            if fits and source_format in _PASSTHROUGH_FORMATS:
                img.verify()
                return Thumbnail(
                    data=cover,
                    width=img.width,
                    height=img.height,
                    mime_type=_PASSTHROUGH_FORMATS[source_format],
                )

            target_format = source_format if source_format in _PASSTHROUGH_FORMATS else "JPEG"
            if target_format == "JPEG" and img.mode not in ("RGB", "L"):
                img = img.convert("RGB")

            img.thumbnail(max_size, PILImage.Resampling.LANCZOS)

            output = BytesIO()
            if target_format == "JPEG":
                img.save(output, format="JPEG", quality=self.settings.jpeg_quality, optimize=True)
            else:
                img.save(output, format=target_format, optimize=True)
            return Thumbnail(
                data=output.getvalue(),
                width=img.width,
                height=img.height,
                mime_type=_PASSTHROUGH_FORMATS[target_format],
            )

    async def derive_thumbnail(self, cover: bytes) -> Thumbnail | None:
        """Derive a thumbnail from cover bytes.

        Runs PIL in a thread because it's CPU-bound!

        Returns:
            Thumbnail, or None if the bytes aren't a decodable image
        """
        if not cover:
            return None
        try:
            return await asyncio.to_thread(self._process_sync, cover)
        except Exception as e:
            logger.warning("Error creating thumbnail from cover: %s", e)
            return None
