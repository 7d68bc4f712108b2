"""Utilities to decompose tab URLs into comparable keys."""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from typing import Optional, Union

_IPV4_PATTERN = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_IPV6_PATTERN = re.compile(r"^([0-9a-f]{0,4}:){2,7}[0-9a-f]{0,4}$", re.IGNORECASE)

DEFAULT_PORTS: frozenset[int] = frozenset({80, 443})

RESTRICTED_SCHEMES: frozenset[str] = frozenset(
    {
        "about",
        "chrome",
        "chrome-extension",
        "edge",
        "moz-extension",
        "safari",
        "safari-web-extension",
        "view-source",
    }
)


@dataclass(frozen=True, slots=True)
class UrlKey:
    """Structural fields of a parsed tab URL."""

    scheme: str
    host: str
    port: Optional[int]
    path: str
    query: str
    fragment: str
    root_domain: str
    domain_key: str


@dataclass(frozen=True, slots=True)
class UrlParseFailure:
    url: str
    reason: str

    def __bool__(self) -> bool:
        return False


KeyResult = Union[UrlKey, UrlParseFailure]


def classify_host(host: str) -> str:
    """Return ``ipv4``, ``ipv6``, ``localhost`` or ``domain``."""
    if _IPV4_PATTERN.match(host):
        return "ipv4"
    # Hostnames cannot contain colons, so any colon means an IPv6 literal,
    # including IPv4-mapped forms such as ::ffff:10.0.0.1.
    if _IPV6_PATTERN.match(host) or ":" in host:
        return "ipv6"
    if host == "localhost":
        return "localhost"
    return "domain"


def root_domain(host: str) -> str:
    """Reduce a hostname to its last two labels; addresses stay whole.

    This is a simplified eTLD+1: ``foo.bar.co.uk`` yields ``co.uk``.
    """
    if classify_host(host) != "domain":
        return host
    labels = host.split(".")
    if len(labels) <= 2:
        return host
    return ".".join(labels[-2:])


def build_key(url: str) -> KeyResult:
    if not isinstance(url, str) or not url.strip():
        return UrlParseFailure(str(url or ""), "empty url")
    try:
        parsed = urllib.parse.urlsplit(url.strip())
        port = parsed.port
    except ValueError as exc:
        return UrlParseFailure(url, str(exc))

    scheme = parsed.scheme.lower()
    if not scheme:
        return UrlParseFailure(url, "missing scheme")
    host = (parsed.hostname or "").lower().rstrip(".")
    if not host:
        return UrlParseFailure(url, "missing host")

    if port in DEFAULT_PORTS:
        port = None
    root = root_domain(host)
    domain_key = root
    if port is not None:
        shown = f"[{root}]" if classify_host(host) == "ipv6" else root
        domain_key = f"{shown}:{port}"

    return UrlKey(
        scheme=scheme,
        host=host,
        port=port,
        path=parsed.path or "/",
        query=parsed.query,
        fragment=parsed.fragment,
        root_domain=root,
        domain_key=domain_key,
    )


def domain_key_for(url: str) -> Optional[str]:
    key = build_key(url)
    return key.domain_key if isinstance(key, UrlKey) else None


def is_restricted_url(url: Optional[str]) -> bool:
    """True for browser-internal pages that must never be moved or matched."""
    if not url or not url.strip():
        return True
    scheme, sep, _ = url.strip().partition(":")
    return bool(sep) and scheme.lower() in RESTRICTED_SCHEMES
