"""Disk-backed image cache with size fallback.

Images live at ``<image_root>/<size-tag>/<image_id>.jpg``. A missing file is
fetched from the image host; a zero-length file or one older than the
freshness threshold is fetched again and replaced in place. When the host
has no image at the requested size, each fallback size is resolved in order.
"""

import logging
import os
import time
from typing import Callable, Optional, Sequence

from gamemeta.domain.events.api_events import EventSink, ImageFallbackTriggered, make_dispatcher
from gamemeta.domain.exceptions import ImageNotFound
from gamemeta.domain.interfaces.asset_downloader import AssetDownloader
from gamemeta.domain.models.common import FilePath, ImageId
from gamemeta.domain.models.images import CachedImageFile, ImageSize

logger = logging.getLogger(__name__)

IMAGE_URL_TEMPLATE = "https://images.igdb.com/igdb/image/upload/t_{size}/{image_id}.jpg"
DEFAULT_FRESHNESS_DAYS = 7


class ImageCacheResolver:
    """Resolves (image id, size) to a local file, fetching on miss or staleness."""

    def __init__(
        self,
        downloader: AssetDownloader,
        url_template: str = IMAGE_URL_TEMPLATE,
        freshness_days: int = DEFAULT_FRESHNESS_DAYS,
        clock: Callable[[], float] = time.time,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the resolver.

        Args:
            downloader: Fetches image URLs to disk.
            url_template: Upstream URL with ``{size}`` and ``{image_id}`` placeholders.
            freshness_days: Maximum cached file age before a forced re-fetch.
            clock: Wall-clock time source (compared against file mtimes).
            event_sink: Optional receiver for fallback events.
        """
        self.downloader = downloader
        self.url_template = url_template
        self.max_age_seconds = freshness_days * 24 * 60 * 60
        self._clock = clock
        self._dispatch = make_dispatcher(event_sink, logger)
        logger.info(f"ImageCacheResolver initialized. Freshness={freshness_days} days")

    def image_url(self, image_id: ImageId, size: ImageSize) -> str:
        return self.url_template.format(size=size.tag, image_id=image_id)

    def _needs_fetch(self, path: str) -> bool:
        """True when the file is missing, empty or older than the freshness threshold."""
        try:
            stat = os.stat(path)
        except FileNotFoundError:
            return True
        if stat.st_size == 0 or stat.st_mtime + self.max_age_seconds < self._clock():
            logger.debug(f"Cached image {path} is empty or expired; fetching again.")
            return True
        return False

    def _fetch(self, image_root: str, cached: CachedImageFile) -> None:
        self.downloader.download(self.image_url(cached.image_id, cached.size), cached.path_under(image_root))

    def resolve(
        self,
        image_root: str,
        image_id: ImageId,
        size: ImageSize,
        fallback_sizes: Optional[Sequence[ImageSize]] = None,
    ) -> FilePath:
        """Returns the cache path for `image_id` at `size`, fetching it if needed.

        If the host reports the image missing, every entry of `fallback_sizes`
        is resolved in order (without further fallback) and the path from the
        last one is returned, even if an earlier one succeeded. Without
        fallbacks the requested path is returned as-is.

        Raises:
            DownloadError: For any fetch failure other than "not found".
        """
        cached = CachedImageFile(image_id=image_id, size=size)
        return_path = cached.path_under(image_root)

        try:
            # Stale copies stay in place until the downloader replaces them
            if self._needs_fetch(return_path):
                self._fetch(image_root, cached)
        except ImageNotFound:
            logger.info(f"Image {image_id} not found at size '{size.tag}', trying a different size.")
            if fallback_sizes:
                self._dispatch(ImageFallbackTriggered(
                    image_id=image_id,
                    requested_size=size.tag,
                    fallback_sizes=[s.tag for s in fallback_sizes],
                ))
                for fallback_size in fallback_sizes:
                    return_path = self.resolve(image_root, image_id, fallback_size, None)

        return return_path
