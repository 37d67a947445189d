"""Indexer search backends."""

from .endpoint import IndexerEndpoint, build_endpoints
from .protocols import IndexerClient
from .torznab_client import TorznabServiceAdapter

__all__ = [
    "IndexerClient",
    "IndexerEndpoint",
    "TorznabServiceAdapter",
    "build_endpoints",
]
