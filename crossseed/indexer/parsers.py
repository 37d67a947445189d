"""Torznab XML payload parsing and shape guards."""

from __future__ import annotations

from typing import List
from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET

from crossseed.models import CandidateRelease


class TorznabPayloadError(ValueError):
    """Raised when an indexer answers with an error document or unparsable XML."""


def _parse_root(payload: str | bytes, context: str) -> Element:
    try:
        root = ET.fromstring(payload)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise TorznabPayloadError(f"{context} returned malformed XML: {exc}") from exc
    if root.tag == "error":
        code = root.get("code", "?")
        description = root.get("description") or "no description"
        raise TorznabPayloadError(f"{context} returned error {code}: {description}")
    return root


def _text(item: Element, tag: str) -> str:
    child = item.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _item_link(item: Element) -> str:
    link = _text(item, "link")
    if link:
        return link
    enclosure = item.find("enclosure")
    if enclosure is not None:
        return (enclosure.get("url") or "").strip()
    return ""


def parse_search_results(payload: str | bytes, indexer: str) -> List[CandidateRelease]:
    """Return results in the order the indexer ranked them; incomplete items are dropped."""
    root = _parse_root(payload, f"{indexer} search")
    channel = root.find("channel")
    if channel is None:
        if root.tag != "channel":
            raise TorznabPayloadError(f"{indexer} search response has no <channel> element")
        channel = root

    results: List[CandidateRelease] = []
    for item in channel.findall("item"):
        title = _text(item, "title")
        link = _item_link(item)
        if not title or not link:
            continue
        results.append(CandidateRelease(title=title, link=link, indexer=indexer))
    return results


def parse_capabilities(payload: str | bytes, indexer: str) -> frozenset[str]:
    """Names of the search functions the indexer reports as available."""
    root = _parse_root(payload, f"{indexer} caps")
    searching = root.find("searching")
    if searching is None:
        return frozenset()
    return frozenset(
        child.tag
        for child in searching
        if (child.get("available") or "").strip().lower() == "yes"
    )
