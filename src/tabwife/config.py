"""Configuration models and helpers for tab matching and organization."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Iterable, Mapping, Optional

FACETS: tuple[str, ...] = ("domain", "subdomain", "port", "path", "query", "fragment")


@dataclass(frozen=True, slots=True)
class MatchConfig:
    """Which URL facets must be equal for two tabs to count as duplicates."""

    domain: bool = True
    subdomain: bool = True
    port: bool = True
    path: bool = True
    query: bool = True
    fragment: bool = False

    def __post_init__(self) -> None:
        if not any(getattr(self, name) for name in FACETS):
            raise ValueError("match configuration needs at least one enabled facet")

    @property
    def enabled(self) -> tuple[str, ...]:
        return tuple(name for name in FACETS if getattr(self, name))

    @classmethod
    def from_facets(cls, facets: Iterable[str]) -> "MatchConfig":
        wanted = {str(name).strip().lower() for name in facets}
        unknown = wanted.difference(FACETS)
        if unknown:
            raise ValueError(f"Unknown match facet(s): {', '.join(sorted(unknown))}")
        return cls(**{name: name in wanted for name in FACETS})

    @classmethod
    def from_flags(cls, flags: Mapping[str, Any]) -> "MatchConfig":
        """Build from checkbox-style ``{facet: bool}`` flags; missing facets are off."""
        unknown = set(flags).difference(FACETS)
        if unknown:
            raise ValueError(f"Unknown match facet(s): {', '.join(sorted(unknown))}")
        return cls(**{name: bool(flags.get(name, False)) for name in FACETS})

    @classmethod
    def from_mode(cls, mode: str) -> "MatchConfig":
        """Translate a preset or legacy mode name into a facet set."""
        key = (mode or "").strip().lower()
        facets = PRESETS.get(key) or LEGACY_MODES.get(key)
        if facets is None:
            known = sorted(set(PRESETS) | set(LEGACY_MODES))
            raise ValueError(f"Unknown match mode {mode!r}; expected one of {', '.join(known)}")
        return cls.from_facets(facets)


PRESETS: dict[str, tuple[str, ...]] = {
    "relaxed": ("domain",),
    "normal": ("domain", "subdomain", "port", "path", "query"),
    "strict": FACETS,
}

# Modes stored by older releases under the ``matchMode`` setting.
LEGACY_MODES: dict[str, tuple[str, ...]] = {
    "exact": FACETS,
    "domain": ("domain", "subdomain"),
    "subdomain": ("domain", "subdomain", "port"),
    "path": ("domain", "subdomain", "path"),
    "fullpath": ("domain", "subdomain"),
}

DEFAULT_MATCH_CONFIG = MatchConfig()
DEFAULT_CONSOLIDATION_THRESHOLD = 3


@dataclass(slots=True)
class EngineSettings:
    """User preferences that drive duplicate detection and auto-organization."""

    match_config: MatchConfig = field(default_factory=MatchConfig)
    keep_newest: bool = True
    auto_detect: bool = True
    notify_duplicates: bool = True
    auto_organize: bool = True
    consolidation_threshold: int = DEFAULT_CONSOLIDATION_THRESHOLD

    def __post_init__(self) -> None:
        if self.consolidation_threshold < 1:
            raise ValueError("consolidation threshold must be at least 1")

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "EngineSettings":
        """Read settings stored under the browser extension's key names."""
        raw = raw or {}
        match_config = DEFAULT_MATCH_CONFIG
        if raw.get("matchFacets") is not None:
            facets = raw["matchFacets"]
            if isinstance(facets, Mapping):
                match_config = MatchConfig.from_flags(facets)
            else:
                match_config = MatchConfig.from_facets(facets)
        elif raw.get("matchMode"):
            match_config = MatchConfig.from_mode(str(raw["matchMode"]))

        return cls(
            match_config=match_config,
            keep_newest=bool(raw.get("keepNewest", True)),
            auto_detect=bool(raw.get("autoDetect", True)),
            notify_duplicates=bool(raw.get("notifyDuplicates", True)),
            auto_organize=bool(raw.get("autoOrganizeTabs", True)),
            consolidation_threshold=int(
                raw.get("consolidationThreshold", DEFAULT_CONSOLIDATION_THRESHOLD)
            ),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "matchFacets": {
                f.name: getattr(self.match_config, f.name) for f in fields(self.match_config)
            },
            "keepNewest": self.keep_newest,
            "autoDetect": self.auto_detect,
            "notifyDuplicates": self.notify_duplicates,
            "autoOrganizeTabs": self.auto_organize,
            "consolidationThreshold": self.consolidation_threshold,
        }
