"""Asset download adapters."""

from .http_downloader import HttpAssetDownloader

__all__ = ["HttpAssetDownloader"]
