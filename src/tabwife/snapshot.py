"""Load tab snapshots exported by the browser host."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import Tab


class TabPayload(BaseModel):
    id: int
    url: str = ""
    title: Optional[str] = None
    window_id: int = Field(alias="windowId")
    pinned: bool = False
    active: bool = False

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_tab(self) -> Tab:
        return Tab(
            id=self.id,
            url=self.url,
            window_id=self.window_id,
            title=self.title or "",
            pinned=self.pinned,
            active=self.active,
        )


class SnapshotPayload(BaseModel):
    """All tabs plus, optionally, the ids of windows that are still open."""

    tabs: list[TabPayload] = Field(default_factory=list)
    windows: Optional[list[int]] = None

    model_config = ConfigDict(extra="forbid")

    def to_tabs(self) -> list[Tab]:
        return [payload.to_tab() for payload in self.tabs]

    def open_window_ids(self) -> set[int]:
        if self.windows is not None:
            return set(self.windows)
        return {payload.window_id for payload in self.tabs}


def parse_snapshot(data: Any) -> SnapshotPayload:
    """Accept either ``{"tabs": [...]}`` or a bare list of tabs."""
    if isinstance(data, list):
        data = {"tabs": data}
    return SnapshotPayload.model_validate(data)


def load_snapshot(path: Path) -> SnapshotPayload:
    with Path(path).open("r", encoding="utf-8") as handle:
        return parse_snapshot(json.load(handle))
