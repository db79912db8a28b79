"""Application services."""

from .dashboards import DashboardController, DashboardService, DashboardView, FilterView, table_key
from .datasets import DatasetService, PendingUpload

__all__ = [
    "DashboardController",
    "DashboardService",
    "DashboardView",
    "DatasetService",
    "FilterView",
    "PendingUpload",
    "table_key",
]
