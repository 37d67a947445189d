"""CrossSeed - seed what you already have on every indexer that carries it."""

from crossseed.__version__ import __version__

__all__ = ["__version__"]
