"""
config.py - Configuration model for CrossSeed
"""

from __future__ import annotations

import os
import sys
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from rich.console import Console

import tomllib

console = Console()

CONFIG_ENV_VAR = "CROSS_SEED_CONFIG"
ENV_PREFIX = "CROSS_SEED_"
ENV_OVERRIDABLE = (
    "torrents_path",
    "output_path",
    "torrent_mode",
    "run_mode",
    "log_level",
    "torrent_category",
    "max_concurrency",
)


class TorrentMode(str, Enum):
    """What to do with a cross-seed once it is found."""

    INJECT_TRACKERS = "inject_trackers"
    INJECT_FILE = "inject_file"
    FILESYSTEM = "filesystem"


class RunMode(str, Enum):
    SCRIPT = "script"
    DAEMON = "daemon"


class LogLevel(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"
    OFF = "off"


_TORRENT_MODE_ALIASES = {
    "inject_trackers": TorrentMode.INJECT_TRACKERS,
    "injecttrackers": TorrentMode.INJECT_TRACKERS,
    "inject_file": TorrentMode.INJECT_FILE,
    "injectfile": TorrentMode.INJECT_FILE,
    "filesystem": TorrentMode.FILESYSTEM,
    "search": TorrentMode.FILESYSTEM,
}
_LOG_LEVEL_ALIASES = {"warning": LogLevel.WARN, "disabled": LogLevel.OFF}


class IndexerConfig(BaseModel):
    name: str = ""
    url: str
    api_key: str = ""
    enabled: bool = True


class QBittorrentConfig(BaseModel):
    url: str
    username: str = ""
    password: str = ""
    verify_certificate: bool = True


class CrossSeedConfig(BaseModel):
    torrents_path: Path
    output_path: Optional[Path] = None
    torrent_mode: TorrentMode = TorrentMode.INJECT_TRACKERS
    run_mode: RunMode = RunMode.SCRIPT
    daemon_interval_minutes: int = Field(default=60, ge=1)
    log_level: LogLevel = LogLevel.INFO
    torrent_category: str = "cross-seed"
    torrent_tags: List[str] = Field(default_factory=list)
    max_concurrency: int = Field(
        default=10,
        ge=1,
        description="Upper bound on (torrent, indexer) units of work running at once",
    )
    max_redirects: int = Field(default=5, ge=0, description="Redirect hops followed when resolving a link")
    request_timeout: int = Field(default=30, ge=1)
    indexers: Dict[str, IndexerConfig] = Field(default_factory=dict)
    qbittorrent: Optional[QBittorrentConfig] = None
    config_path: Optional[Path] = None

    @field_validator("torrent_mode", mode="before")
    @classmethod
    def _torrent_mode_alias(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            if normalized in _TORRENT_MODE_ALIASES:
                return _TORRENT_MODE_ALIASES[normalized]
        return value

    @field_validator("run_mode", mode="before")
    @classmethod
    def _run_mode_lower(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("log_level", mode="before")
    @classmethod
    def _log_level_alias(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            return _LOG_LEVEL_ALIASES.get(normalized, normalized)
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "CrossSeedConfig":
        for name, indexer in self.indexers.items():
            if not indexer.name:
                indexer.name = name
        if self.torrent_mode == TorrentMode.FILESYSTEM and self.output_path is None:
            raise ValueError("output_path is required when torrent_mode is 'filesystem'")
        return self

    def enabled_indexers(self) -> List[IndexerConfig]:
        return [indexer for indexer in self.indexers.values() if indexer.enabled]


def env_overrides(environ: Mapping[str, str]) -> Dict[str, str]:
    """Collect CROSS_SEED_<FIELD> overrides for scalar top-level settings."""
    overrides: Dict[str, str] = {}
    for field_name in ENV_OVERRIDABLE:
        value = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value:
            overrides[field_name] = value
    return overrides


def build_config(
    config_data: dict,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[dict] = None,
) -> CrossSeedConfig:
    """Merge file data, environment and explicit overrides (highest wins)."""
    data = dict(config_data)
    data.update(env_overrides(os.environ if environ is None else environ))
    data.update({key: value for key, value in (overrides or {}).items() if value is not None})
    data["config_path"] = config_path
    return CrossSeedConfig(**data)


def load_config(
    config_path: Path,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[dict] = None,
) -> CrossSeedConfig:
    """Load configuration from TOML file"""

    if not config_path.exists():
        console.print(f"[red][ERROR][/red] Configuration file not found: {config_path}")
        console.print("Please create config.toml with your indexers and download client")
        sys.exit(1)

    try:
        with open(config_path, "rb") as f:
            config_data = tomllib.load(f)
        return build_config(config_data, config_path, environ=environ, overrides=overrides)
    except (tomllib.TOMLDecodeError, ValidationError, ValueError) as e:
        console.print(f"[red][ERROR][/red] Error loading configuration: {e}")
        sys.exit(1)
