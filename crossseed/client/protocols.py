"""Protocol definition for download-client backends."""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from crossseed.models import ClientTorrentRecord


class DownloadClient(Protocol):
    """Operations the engine performs against the operator's seeding software."""

    name: str

    async def login(self) -> None:
        ...

    async def find_by_fingerprint(self, fingerprint: str) -> Optional[ClientTorrentRecord]:
        ...

    async def get_trackers(self, fingerprint: str) -> Sequence[str]:
        ...

    async def add_trackers(self, fingerprint: str, urls: Iterable[str]) -> None:
        ...

    async def remove_torrent(self, fingerprint: str, delete_data: bool = False) -> None:
        ...

    async def add_torrent(
        self,
        data: bytes,
        category: str,
        tags: Iterable[str],
        save_path: Optional[str] = None,
    ) -> None:
        ...

    async def close(self) -> None:
        ...
