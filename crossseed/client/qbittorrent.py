"""qBittorrent backend over qbittorrentapi."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, List, Mapping, Optional, TypeVar

import qbittorrentapi

from crossseed.client.protocols import DownloadClient
from crossseed.config import QBittorrentConfig
from crossseed.errors import ClientFailure
from crossseed.logger import CrossSeedLogger
from crossseed.models import ClientTorrentRecord, TorrentState

_T = TypeVar("_T")

_STATE_MAP: dict[str, TorrentState] = {
    "uploading": TorrentState.UPLOADING,
    "stalledUP": TorrentState.UPLOADING,
    "forcedUP": TorrentState.UPLOADING,
    "queuedUP": TorrentState.QUEUED_UPLOADING,
    "pausedUP": TorrentState.PAUSED,
    "stoppedUP": TorrentState.PAUSED,
    "pausedDL": TorrentState.PAUSED,
    "stoppedDL": TorrentState.PAUSED,
    "downloading": TorrentState.DOWNLOADING,
    "stalledDL": TorrentState.DOWNLOADING,
    "forcedDL": TorrentState.DOWNLOADING,
    "metaDL": TorrentState.DOWNLOADING,
    "forcedMetaDL": TorrentState.DOWNLOADING,
    "allocating": TorrentState.DOWNLOADING,
    "queuedDL": TorrentState.QUEUED_DOWNLOADING,
    "error": TorrentState.ERRORED,
    "missingFiles": TorrentState.ERRORED,
    "moving": TorrentState.CHECKING,
}


def map_state(raw_state: Optional[str]) -> TorrentState:
    state = raw_state or ""
    if state in _STATE_MAP:
        return _STATE_MAP[state]
    if state.startswith("checking"):
        return TorrentState.CHECKING
    return TorrentState.UNKNOWN


def parse_tags(raw_tags: Any) -> tuple[str, ...]:
    if not raw_tags:
        return ()
    if isinstance(raw_tags, str):
        parts: Iterable[str] = raw_tags.split(",")
    else:
        parts = raw_tags
    return tuple(tag.strip() for tag in parts if tag and tag.strip())


def record_from_info(info: Mapping[str, Any]) -> ClientTorrentRecord:
    return ClientTorrentRecord(
        fingerprint=str(info.get("hash", "")).lower(),
        name=str(info.get("name", "")),
        state=map_state(info.get("state")),
        category=str(info.get("category") or ""),
        tags=parse_tags(info.get("tags")),
        save_path=info.get("save_path") or None,
    )


class QBittorrentClient(DownloadClient):
    """Blocking qbittorrentapi calls, each run in a worker thread."""

    name = "qbittorrent"

    def __init__(
        self,
        config: QBittorrentConfig,
        log: CrossSeedLogger,
        timeout: int = 30,
        api_factory: Callable[..., qbittorrentapi.Client] = qbittorrentapi.Client,
    ) -> None:
        self.config = config
        self.log = log
        self._api = api_factory(
            host=config.url,
            username=config.username,
            password=config.password,
            VERIFY_WEBUI_CERTIFICATE=config.verify_certificate,
            REQUESTS_ARGS={"timeout": timeout},
        )

    async def _call(self, description: str, func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except qbittorrentapi.APIError as exc:
            raise ClientFailure(f"qBittorrent {description} failed: {type(exc).__name__}: {exc}") from exc

    async def login(self) -> None:
        await self._call("login", self._api.auth_log_in)
        self.log.debug(f"Logged in to qBittorrent at {self.config.url}")

    async def find_by_fingerprint(self, fingerprint: str) -> Optional[ClientTorrentRecord]:
        results = await self._call("torrent lookup", self._api.torrents_info, torrent_hashes=fingerprint)
        for info in results or []:
            record = record_from_info(info)
            if record.fingerprint == fingerprint.lower():
                return record
        return None

    async def get_trackers(self, fingerprint: str) -> List[str]:
        trackers = await self._call("tracker list", self._api.torrents_trackers, torrent_hash=fingerprint)
        return [str(tracker.get("url", "")) for tracker in trackers or [] if tracker.get("url")]

    async def add_trackers(self, fingerprint: str, urls: Iterable[str]) -> None:
        await self._call(
            "add trackers",
            self._api.torrents_add_trackers,
            torrent_hash=fingerprint,
            urls=list(urls),
        )

    async def remove_torrent(self, fingerprint: str, delete_data: bool = False) -> None:
        await self._call(
            "remove torrent",
            self._api.torrents_delete,
            delete_files=delete_data,
            torrent_hashes=fingerprint,
        )

    async def add_torrent(
        self,
        data: bytes,
        category: str,
        tags: Iterable[str],
        save_path: Optional[str] = None,
    ) -> None:
        kwargs: dict[str, Any] = {
            "torrent_files": {"cross-seed.torrent": data},
            "category": category or None,
            "tags": list(tags) or None,
        }
        if save_path:
            kwargs["save_path"] = save_path
        result = await self._call("add torrent", self._api.torrents_add, **kwargs)
        if isinstance(result, str) and result.strip().lower().startswith("fails"):
            raise ClientFailure("qBittorrent refused the torrent (Fails.)")

    async def close(self) -> None:
        try:
            await asyncio.to_thread(self._api.auth_log_out)
        except qbittorrentapi.APIError as exc:
            self.log.debug(f"qBittorrent logout failed: {exc}")
