"""
Minimal logging context for CrossSeed.
Single place to control all output: screen + file, with flush.
"""
from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qsl, urlsplit, urlunsplit

from rich.console import Console
from rich.text import Text

from crossseed.config import LogLevel

_LEVEL_RANK = {
    LogLevel.ERROR: 0,
    LogLevel.WARN: 1,
    LogLevel.INFO: 2,
    LogLevel.DEBUG: 3,
    LogLevel.TRACE: 3,
}

_PREFIX_STYLES = (
    ("[CRITICAL]", "bold red"),
    ("[ERROR]", "red"),
    ("[WARNING]", "yellow"),
    ("[INFO]", "cyan"),
    ("[DEBUG]", "grey50"),
)
_HIGHLIGHTS = (
    (re.compile(r"Cross-seed (?:found|added|injected|written)[^.]*"), "green"),
    (re.compile(r"Skipped \([^)]*\)"), "grey50"),
    (re.compile(r"Failed \([^)]*\)"), "red"),
    (re.compile(r"\[[^\]\[]+\] (?=Checking)"), "yellow"),
)
_SECRET_KEYS = frozenset({"apikey", "api_key", "passkey", "password"})


def next_run_path(output_dir: Path = Path(".")) -> Path:
    """Find next available runN.txt path in output directory."""
    output_dir.mkdir(parents=True, exist_ok=True)

    max_num = 0
    for path in output_dir.glob("run*.txt"):
        try:
            num = int(path.stem[3:])
            max_num = max(max_num, num)
        except (ValueError, IndexError):
            pass

    return output_dir / f"run{max_num + 1}.txt"


class CrossSeedLogger:
    """Minimal logger: print to screen + file, always flush"""

    def __init__(
        self,
        log_file: Optional[Path] = None,
        level: LogLevel = LogLevel.INFO,
        console: Optional[Console] = None,
    ):
        self.log_file = log_file
        self.level = level
        self._file_handle = None
        self._start_time = datetime.now()
        self._console = console or Console(highlight=False)
        self._status_width = 0

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = open(log_file, "w", buffering=1, encoding="utf-8")

        from crossseed import __version__

        self.log(f"({self._start_time.strftime('%H:%M:%S')}  Started CrossSeed {__version__})")

    @property
    def debug_mode(self) -> bool:
        return self._enabled(LogLevel.DEBUG)

    def _enabled(self, level: LogLevel) -> bool:
        if self.level == LogLevel.OFF:
            return False
        return _LEVEL_RANK[level] <= _LEVEL_RANK.get(self.level, 2)

    def _screen_text(self, line: str) -> Text:
        text = Text(line)
        for prefix, style in _PREFIX_STYLES:
            start = line.find(prefix)
            if start != -1:
                text.stylize(style, start, start + len(prefix))
        for pattern, style in _HIGHLIGHTS:
            for match in pattern.finditer(line):
                text.stylize(style, match.start(), match.end())
        return text

    def log(self, msg: str, prefix: str = ""):
        """Log to screen and file"""
        output = f"{prefix}{msg}" if prefix else msg

        if self.level != LogLevel.OFF:
            self.clear_status()
            self._console.print(self._screen_text(output))

        if self._file_handle:
            self._file_handle.write(output + "\n")
            self._file_handle.flush()

    def info(self, msg: str):
        if self._enabled(LogLevel.INFO):
            self.log(msg)

    def warning(self, msg: str):
        if self._enabled(LogLevel.WARN):
            self.log(msg, "[WARNING] ")

    def error(self, msg: str):
        if self._enabled(LogLevel.ERROR):
            self.log(msg, "[ERROR] ")

    def critical(self, msg: str):
        """Always written, whatever the configured level."""
        self.log(msg, "[CRITICAL] ")

    def debug(self, msg: str):
        """Debug message (only shown in debug mode)"""
        if self.debug_mode:
            timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
            self.log(msg, f"[{timestamp}] [DEBUG] ")

    def status(self, msg: str):
        """Inline progress line, overwritten by the next status or log call."""
        if self.level == LogLevel.OFF:
            return
        padding = " " * max(0, self._status_width - len(msg))
        print(f"\r{msg}{padding}", end="", flush=True)
        self._status_width = len(msg)

    def clear_status(self):
        if not self._status_width:
            return
        print("\r" + " " * self._status_width + "\r", end="", flush=True)
        self._status_width = 0

    def api_request(self, method: str, url: str, params: dict):
        """Log API request (debug mode only)"""
        if self.debug_mode:
            # Query values are logged with the params so secrets in links get masked too.
            parts = urlsplit(url)
            merged = dict(parse_qsl(parts.query, keep_blank_values=True))
            merged.update(params)
            redacted = {k: ("****" if k.lower() in _SECRET_KEYS else v) for k, v in merged.items()}
            self.debug(f"API Request: {method} {urlunsplit(parts._replace(query=''))}")
            if redacted:
                self.debug(f"  Params: {json.dumps(redacted, indent=2)}")

    def api_response(self, status: int, summary: str, elapsed_ms: float):
        """Log API response (debug mode only)"""
        if self.debug_mode:
            self.debug(f"API Response ({elapsed_ms:.0f}ms): Status {status}")
            if summary:
                if len(summary) > 5000:
                    summary = summary[:5000] + "\n  ... (truncated)"
                self.debug(f"  Data: {summary}")

    def close(self):
        """Close file handle with goodbye message"""
        if self._file_handle:
            end_time = datetime.now()
            elapsed = end_time - self._start_time
            self.log(f"({end_time.strftime('%H:%M:%S')}  Ended session, elapsed {elapsed.total_seconds():.1f}s)")
            self._file_handle.close()
            self._file_handle = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
