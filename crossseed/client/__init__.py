"""Download-client backends."""

from __future__ import annotations

from crossseed.config import CrossSeedConfig
from crossseed.logger import CrossSeedLogger

from .protocols import DownloadClient
from .qbittorrent import QBittorrentClient


def build_download_client(config: CrossSeedConfig, log: CrossSeedLogger) -> DownloadClient:
    """Pick the configured backend once, at startup."""
    if config.qbittorrent is not None:
        return QBittorrentClient(config.qbittorrent, log, timeout=config.request_timeout)
    raise ValueError("No download client configured (add a [qbittorrent] section)")


__all__ = ["DownloadClient", "QBittorrentClient", "build_download_client"]
