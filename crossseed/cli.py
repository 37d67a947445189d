#!/usr/bin/env python3
"""
cli.py - Entry point for CrossSeed
Find what you already seed on other indexers and seed it there too.
"""

try:
    import asyncio
    import sys
    import argparse
    import os
    import time
    from pathlib import Path
    from typing import Optional, Sequence
    from rich.console import Console
    import crossseed as pkg
    from .client import build_download_client
    from .config import CONFIG_ENV_VAR, CrossSeedConfig, RunMode, TorrentMode, load_config
    from .core.coordinator import ReconciliationCoordinator, RunReport
    from .discovery import find_torrent_files, load_local_torrents
    from .indexer import build_endpoints
    from .logger import CrossSeedLogger, next_run_path
    from .report import render_report
    from .verification import verify_access
except ImportError as e:
    print(f"Error: Missing required dependency: {e}")
    print("Please install required dependencies: pip install -e .")
    sys.exit(1)

console = Console()
_CLI_SESSION_START_MONOTONIC = time.monotonic()


def _ui_info(message: str) -> None:
    console.print(f"[cyan][INFO][/cyan] {message}")


def _ui_error(message: str) -> None:
    console.print(f"[red][ERROR][/red] {message}")


def _reset_cli_session_timer() -> None:
    global _CLI_SESSION_START_MONOTONIC
    _CLI_SESSION_START_MONOTONIC = time.monotonic()


def _format_elapsed_runtime(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    if seconds < 3_600:
        return f"{seconds / 60:.1f}m"
    if seconds < 86_400:
        return f"{seconds / 3_600:.1f}h"
    return f"{seconds / 86_400:.1f}d"


def _ui_goodbye_with_elapsed() -> None:
    elapsed = max(0.0, time.monotonic() - _CLI_SESSION_START_MONOTONIC)
    _ui_info(f"Goodbye! Elapsed {_format_elapsed_runtime(elapsed)}")


def resolve_config_path(args_config: Optional[str], environ=None) -> Path:
    """--config wins, then $CROSS_SEED_CONFIG, then ./config.toml."""
    environ = os.environ if environ is None else environ
    raw = args_config or environ.get(CONFIG_ENV_VAR)
    if raw:
        p = Path(raw).expanduser()
        if p.is_dir():
            p = p / "config.toml"
        return p

    cwd_candidate = Path.cwd() / "config.toml"
    if cwd_candidate.exists():
        return cwd_candidate

    repo_root = Path(__file__).resolve().parent.parent
    root_candidate = repo_root / "config.toml"
    if root_candidate.exists() and (
        (repo_root / ".git").exists() or (repo_root / "pyproject.toml").exists()
    ):
        return root_candidate
    return cwd_candidate


def build_overrides(args: argparse.Namespace) -> dict:
    overrides = {}
    if args.mode:
        overrides["torrent_mode"] = args.mode
    if args.daemon:
        overrides["run_mode"] = RunMode.DAEMON.value
    if args.debug:
        overrides["log_level"] = "debug"
    return overrides


async def run_pass(
    config: CrossSeedConfig,
    coordinator: ReconciliationCoordinator,
    endpoints,
    log: CrossSeedLogger,
) -> RunReport:
    """Re-read the torrent directory and reconcile it against every indexer."""
    paths = find_torrent_files(config.torrents_path)
    torrents = load_local_torrents(paths, log)
    log.info(f"Loaded {len(torrents)} torrent(s) from {config.torrents_path}")
    if not torrents:
        log.warning(f"No usable .torrent files found in {config.torrents_path}")
        return RunReport()
    if not endpoints:
        log.warning("No enabled indexers configured")
        return RunReport()
    return await coordinator.run(torrents, endpoints)


async def run(config: CrossSeedConfig, log: CrossSeedLogger) -> None:
    endpoints = build_endpoints(config, log)
    client = build_download_client(config, log)
    try:
        await client.login()
        coordinator = ReconciliationCoordinator(config, client, log)
        log.info(f"Mode: {config.torrent_mode.value}, {len(endpoints)} indexer(s), client {client.name}")
        while True:
            report = await run_pass(config, coordinator, endpoints, log)
            render_report(report, console)
            if config.run_mode != RunMode.DAEMON:
                break
            log.info(f"Next pass in {config.daemon_interval_minutes} minute(s)")
            await asyncio.sleep(config.daemon_interval_minutes * 60)
    finally:
        await asyncio.gather(*(endpoint.close() for endpoint in endpoints), return_exceptions=True)
        await client.close()


async def verify(config: CrossSeedConfig, log: CrossSeedLogger) -> bool:
    endpoints = build_endpoints(config, log)
    client = build_download_client(config, log) if config.qbittorrent is not None else None
    try:
        return await verify_access(endpoints, client, console)
    finally:
        await asyncio.gather(*(endpoint.close() for endpoint in endpoints), return_exceptions=True)
        if client is not None:
            await client.close()


def show_help(parser: argparse.ArgumentParser) -> None:
    print(f"CrossSeed v{getattr(pkg, '__version__', '0.0.0')} - Seed what you have on every indexer that carries it")
    print()
    parser.print_help()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crossseed", add_help=False)
    for args, kwargs in (
        (("-h", "--help"), {"action": "store_true", "help": "Show help"}),
        (("--verify",), {"action": "store_true", "help": "Verify indexers and download client, then exit"}),
        (("-c", "--config"), {"metavar": "PATH", "help": "Path to config.toml (file or directory)"}),
        (("-o", "--output"), {"metavar": "DIR", "help": "Output directory for run logs (default: ./output)"}),
        (("-d", "--debug"), {"action": "store_true", "help": "Debug mode with API calls, responses, timestamps"}),
        (("--mode",), {"choices": [mode.value for mode in TorrentMode], "help": "What to do with a found cross-seed"}),
        (("--daemon",), {"action": "store_true", "help": "Keep running, one pass every daemon_interval_minutes"}),
    ):
        parser.add_argument(*args, **kwargs)
    return parser


def main(argv: Optional[Sequence[str]] = None):
    """Entry point"""
    _reset_cli_session_timer()
    parser = build_parser()

    try:
        args = parser.parse_args(argv)
        if args.help:
            show_help(parser)
            sys.exit(0)

        config_path = resolve_config_path(args.config)
        config = load_config(config_path, overrides=build_overrides(args))
        output_dir = Path(args.output).expanduser() if args.output else Path("output")

        with CrossSeedLogger(next_run_path(output_dir), level=config.log_level) as log:
            if args.verify:
                result = asyncio.run(verify(config, log))
                sys.exit(0 if result else 1)
            asyncio.run(run(config, log))
        sys.exit(0)
    except KeyboardInterrupt:
        _ui_goodbye_with_elapsed()
        sys.exit(0)
    except Exception as e:
        _ui_error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
