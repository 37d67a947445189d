"""Tracker set normalization and merging."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Set, Union
from urllib.parse import unquote

TrackerInput = Iterable[Union[str, Iterable[str]]]


def is_pseudo_tracker(url: str) -> bool:
    """True for client-side markers such as ``** [DHT] **``, ``** [PeX] **``, ``** [LSD] **``."""
    stripped = url.strip()
    return stripped.startswith("** [") and stripped.endswith("] **")


def decode_url(url: str) -> str:
    return unquote(url.strip())


def flatten(urls: TrackerInput) -> Iterator[str]:
    """Yield URLs from either a flat list or announce tiers, tier order dropped."""
    for item in urls:
        if isinstance(item, str):
            yield item
        else:
            yield from item


def normalize_list(urls: TrackerInput) -> List[str]:
    """Decoded, pseudo-entry-free URLs in first-seen order without duplicates."""
    seen: Set[str] = set()
    output: List[str] = []
    for url in flatten(urls):
        decoded = decode_url(url)
        if not decoded or is_pseudo_tracker(decoded) or decoded in seen:
            continue
        seen.add(decoded)
        output.append(decoded)
    return output


def normalize(urls: TrackerInput) -> Set[str]:
    return set(normalize_list(urls))


def merge(existing: TrackerInput, candidate: TrackerInput) -> List[str]:
    """Existing trackers followed by the candidate's new ones.

    Duplicates are detected on the decoded form; the first occurrence is kept
    as given, so merging the result with the same candidate again is a no-op.
    """
    combined = list(flatten(existing)) + normalize_list(candidate)
    seen: Set[str] = set()
    merged: List[str] = []
    for url in combined:
        if not url.strip() or is_pseudo_tracker(url):
            continue
        key = decode_url(url)
        if is_pseudo_tracker(key) or key in seen:
            continue
        seen.add(key)
        merged.append(url)
    return merged


def added_trackers(existing: TrackerInput, merged: Iterable[str]) -> List[str]:
    """Entries of ``merged`` the existing list does not already carry."""
    present = {decode_url(url) for url in flatten(existing)}
    return [url for url in merged if decode_url(url) not in present]
