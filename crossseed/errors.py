"""Failure taxonomy for one (torrent, indexer) unit of work."""

from __future__ import annotations


class CrossSeedError(Exception):
    """Base class for every failure scoped to a single unit of work."""

    kind = "error"


class SearchFailure(CrossSeedError):
    """Indexer unreachable or returned a malformed/errored response."""

    kind = "search"


class ResolutionFailure(CrossSeedError):
    """A candidate link could not be turned into torrent metadata."""

    kind = "resolution"


class UnsupportedCandidate(ResolutionFailure):
    """The candidate resolved to a shape we recognise but cannot use (magnet links)."""

    kind = "unsupported"


class ClientFailure(CrossSeedError):
    """The download client rejected a call or could not be reached."""

    kind = "client"


class PartialMutationFailure(ClientFailure):
    """A record was removed from the client but its replacement was not added."""

    kind = "partial-mutation"

    def __init__(self, message: str, *, fingerprint: str, name: str, data: bytes) -> None:
        super().__init__(message)
        self.fingerprint = fingerprint
        self.name = name
        self.data = data


class EncodeFailure(CrossSeedError):
    """Re-encoding a torrent descriptor failed."""

    kind = "encode"


class OutputFailure(CrossSeedError):
    """Writing a torrent file to the output directory failed."""

    kind = "output"
