"""Decide whether two tabs point at the same page."""

from __future__ import annotations

import urllib.parse
from typing import Any, Optional

from .config import DEFAULT_MATCH_CONFIG, MatchConfig
from .models import Tab
from .normalization import UrlKey, build_key

MatchKey = tuple[Any, ...]


def _query_items(query: str) -> tuple[tuple[str, str], ...]:
    # Parameter order does not matter; repeated parameters do.
    return tuple(sorted(urllib.parse.parse_qsl(query, keep_blank_values=True)))


def _facet_value(key: UrlKey, facet: str) -> Any:
    if facet == "domain":
        return key.root_domain
    if facet == "subdomain":
        return key.host
    if facet == "port":
        return key.port
    if facet == "path":
        return key.path
    if facet == "query":
        return _query_items(key.query)
    if facet == "fragment":
        return key.fragment
    raise ValueError(f"Unknown match facet: {facet}")


def key_for_url(url: str, config: Optional[MatchConfig] = None) -> Optional[MatchKey]:
    parsed = build_key(url)
    if not isinstance(parsed, UrlKey):
        return None
    config = config or DEFAULT_MATCH_CONFIG
    return tuple((facet, _facet_value(parsed, facet)) for facet in config.enabled)


def match_key(tab: Tab, config: Optional[MatchConfig] = None) -> Optional[MatchKey]:
    """Composite key of the enabled facets, or ``None`` when the URL is unusable."""
    return key_for_url(tab.url, config)


def matches(tab_a: Tab, tab_b: Tab, config: Optional[MatchConfig] = None) -> bool:
    key_a = match_key(tab_a, config)
    if key_a is None:
        return False
    return key_a == match_key(tab_b, config)
