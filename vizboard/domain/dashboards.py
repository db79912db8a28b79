"""Runtime state owned by a dashboard session."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

SessionStatus = Literal["idle", "submitting", "ready", "error"]
UploadStatus = Literal["uploading", "processing", "complete", "error"]


@dataclass(slots=True)
class SortState:
    key: str
    direction: Literal["asc", "desc"] = "asc"


@dataclass(slots=True)
class TableState:
    """Search/sort/page position of one rendered table."""

    search: str = ""
    sort: SortState | None = None
    page: int = 1

    def set_search(self, term: str) -> None:
        if term != self.search:
            self.search = term
            self.page = 1

    def toggle_sort(self, key: str) -> None:
        if self.sort is not None and self.sort.key == key:
            self.sort = SortState(key, "desc" if self.sort.direction == "asc" else "asc")
        else:
            self.sort = SortState(key, "asc")
        self.page = 1


@dataclass(slots=True)
class DashboardSession:
    """One dashboard instance and the state derived from user interaction."""

    session_id: str
    status: SessionStatus = "idle"
    query: str | None = None
    specification: Any = None
    selection: dict[str, Any] = field(default_factory=dict)
    filtered_data: list[dict[str, Any]] = field(default_factory=list)
    tables: dict[str, TableState] = field(default_factory=dict)
    error: str | None = None
    error_title: str | None = None


@dataclass(slots=True)
class UploadTask:
    """Progress of a single file in a batch upload."""

    upload_id: str
    filename: str
    size: int = 0
    progress: int = 0
    status: UploadStatus = "uploading"
    error: str | None = None
    dataset_id: str | None = None
