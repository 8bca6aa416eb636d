"""Builds the backend for a MetadataSource."""

import logging
from typing import Optional

import httpx

from gamemeta.domain.exceptions import ConfigurationError
from gamemeta.domain.interfaces.metadata_backend import MetadataBackend
from gamemeta.domain.models.metadata import MetadataSource
from gamemeta.infrastructure.metadata.igdb_backend import DEFAULT_TIMEOUT_SECONDS, IgdbBackend

logger = logging.getLogger(__name__)


def create_backend(
    source: MetadataSource,
    client_id: Optional[str] = None,
    secret: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    http_client: Optional[httpx.Client] = None,
) -> Optional[MetadataBackend]:
    """Returns the backend for `source`, or None when no source is configured."""
    if source is MetadataSource.NONE:
        logger.info("Metadata source is 'None'; metadata queries will return no results.")
        return None
    if source is MetadataSource.IGDB:
        if not client_id or not secret:
            raise ConfigurationError(
                "IGDB selected as metadata source but IGDB_CLIENT_ID / IGDB_SECRET are not set."
            )
        return IgdbBackend(client_id=client_id, client_secret=secret, http_client=http_client, timeout=timeout)
    raise ConfigurationError(f"No backend available for metadata source '{source.value}'.")
