"""Streams a URI to a local file with integrity verification.

The body is written to a uniquely named ``.part`` file beside the target and
moved into place only once it is known to be non-empty, so readers never see
a partially written file. No retries here; retry policy belongs to callers.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import httpx

from gamemeta.domain.exceptions import DownloadError, ImageNotFound
from gamemeta.domain.interfaces.asset_downloader import AssetDownloader

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
CHUNK_SIZE = 64 * 1024


class HttpAssetDownloader(AssetDownloader):
    """httpx implementation of AssetDownloader."""

    def __init__(self, http_client: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        """
        Args:
            http_client: Optional preconfigured httpx client (tests pass a MockTransport).
            timeout: Timeout in seconds when creating the default client.
        """
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout, follow_redirects=True)

    def download(self, uri: str, destination_path: str) -> bool:
        destination = Path(destination_path)
        logger.info(f"Downloading from {uri} to {destination}")

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.critical(f"Error while downloading from {uri}: cannot create {destination.parent}: {e}")
            raise DownloadError(uri, f"cannot create directory {destination.parent}: {e}") from e

        part_path = destination.with_name(f"{destination.name}.{uuid.uuid4().hex}.part")
        try:
            with self._http.stream("GET", uri) as response:
                if response.status_code == 404:
                    raise ImageNotFound(uri)
                if response.status_code >= 400:
                    raise DownloadError(uri, f"HTTP {response.status_code}", response.status_code)
                with open(part_path, "wb") as f:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        f.write(chunk)

            if part_path.stat().st_size == 0:
                raise DownloadError(uri, "Zero length file")

            os.replace(part_path, destination)

            if not destination.is_file() or destination.stat().st_size == 0:
                destination.unlink(missing_ok=True)
                raise DownloadError(uri, "Zero length file")

        except ImageNotFound:
            # Expected condition for size fallback; callers decide what to do
            logger.info(f"Asset not found at {uri}")
            raise
        except DownloadError as e:
            logger.critical(f"Error while downloading from {uri}: {e}")
            raise
        except httpx.HTTPError as e:
            logger.critical(f"Error while downloading from {uri}: {type(e).__name__}: {e}")
            raise DownloadError(uri, f"{type(e).__name__}: {e}") from e
        except OSError as e:
            logger.critical(f"Error while writing download from {uri} to {destination}: {e}")
            raise DownloadError(uri, f"cannot write {destination}: {e}") from e
        finally:
            part_path.unlink(missing_ok=True)

        logger.debug(f"Downloaded {destination.stat().st_size} bytes to {destination}")
        return True

    def close(self) -> None:
        if self._owns_client:
            self._http.close()
