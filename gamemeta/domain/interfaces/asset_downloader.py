"""Interface for downloading a remote asset to a local file."""

import abc


class AssetDownloader(abc.ABC):
    """Abstract Base Class for URI-to-file downloads."""

    @abc.abstractmethod
    def download(self, uri: str, destination_path: str) -> bool:
        """Fetches `uri` into `destination_path`, creating parent directories.

        Returns:
            True when a non-empty file is in place.

        Raises:
            ImageNotFound: If the remote reports the asset missing (404).
            DownloadError: For transport failures, other bad statuses or an empty body.
        """
        pass
