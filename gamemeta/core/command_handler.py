"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the query client and the image cache resolver, reporting results
and failures through the UserInterface.
"""

import logging
from pathlib import Path
from typing import List, Optional

from gamemeta.domain.exceptions import GameMetaError
from gamemeta.domain.interfaces.user_interface import UserInterface
from gamemeta.domain.models.common import Endpoint, ImageId, QueryFields, QueryFilter
from gamemeta.domain.models.images import ImageSize
from gamemeta.domain.models.metadata import MetadataSource
from gamemeta.infrastructure.cache.image_cache import ImageCacheResolver
from gamemeta.infrastructure.resilience.query_client import MetadataQueryClient

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services.

    Every handler returns True on success so the CLI can set its exit code.
    """

    def __init__(
        self,
        query_client: MetadataQueryClient,
        image_resolver: ImageCacheResolver,
        image_root: Path,
        ui: UserInterface,
    ):
        self.query_client = query_client
        self.image_resolver = image_resolver
        self.image_root = image_root
        self.ui = ui

    def handle_query(self, endpoint: str, fields: str, where: str) -> bool:
        """Handles the 'query' command."""
        logger.info(f"Handling 'query' command for endpoint: {endpoint}")
        try:
            records = self.query_client.query(Endpoint(endpoint), QueryFields(fields), QueryFilter(where))
        except GameMetaError as e:
            logger.error(f"Query command failed: {e}")
            self.ui.display_error(str(e))
            return False

        if not records and self.query_client.source is MetadataSource.NONE:
            self.ui.display_warning("No metadata source configured; nothing was queried.")
        self.ui.display_records(records, title=endpoint)
        return True

    def handle_image(
        self,
        image_id: str,
        size_tag: str,
        fallback_tags: Optional[List[str]] = None,
        image_root: Optional[Path] = None,
    ) -> bool:
        """Handles the 'image' command: resolves an image and prints its local path."""
        try:
            size = ImageSize.from_tag(size_tag)
            fallback_sizes = [ImageSize.from_tag(tag) for tag in (fallback_tags or [])]
        except ValueError as e:
            self.ui.display_error(f"{e}. Run 'gamemeta sizes' for valid sizes.")
            return False

        root = image_root or self.image_root
        logger.info(f"Handling 'image' command for {image_id} ({size.tag}) under {root}")
        try:
            path = self.image_resolver.resolve(str(root), ImageId(image_id), size, fallback_sizes)
        except GameMetaError as e:
            logger.error(f"Image command failed: {e}")
            self.ui.display_error(str(e))
            return False

        if not Path(path).is_file():
            self.ui.display_warning(f"Image {image_id} is not available at any requested size.")
            self.ui.display_output(path)
            return False
        self.ui.display_output(path)
        return True

    def handle_sizes(self) -> bool:
        rows = [(size.tag, size.description) for size in ImageSize]
        self.ui.display_table("Image sizes", ["Tag", "Description"], rows)
        return True

    def handle_status(self) -> bool:
        """Shows the active source, tuning and current rate limit window."""
        governor = self.query_client.governor
        state = governor.snapshot()
        tuning = governor.tuning
        cooling_down, remaining_ms = governor.should_wait_for_recovery()
        self.ui.display_key_values("Metadata communications", {
            "source": self.query_client.source.value,
            "avoidance threshold": f"{tuning.avoidance_threshold} calls / {tuning.avoidance_period_sec}s",
            "avoidance wait": f"{tuning.avoidance_wait_ms}ms",
            "recovery wait": f"{tuning.recovery_wait_ms}ms",
            "calls in window": state.call_count,
            "throttling": state.avoidance_active,
            "recovery cooldown": f"{remaining_ms:.0f}ms remaining" if cooling_down else "inactive",
            "image cache": str(self.image_root),
        })
        return True
