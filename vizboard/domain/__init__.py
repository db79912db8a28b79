"""Domain layer definitions."""

from .dashboards import DashboardSession, SessionStatus, SortState, TableState, UploadStatus, UploadTask

__all__ = [
    "DashboardSession",
    "SessionStatus",
    "SortState",
    "TableState",
    "UploadStatus",
    "UploadTask",
]
