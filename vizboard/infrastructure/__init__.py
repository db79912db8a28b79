"""Infrastructure layer exports."""

from .datasets import DatasetStore, DatasetStoreClient, ProgressCallback
from .notifications import (
    InMemoryNotificationSink,
    LoggingNotificationSink,
    Notification,
    NotificationSink,
    emit,
)
from .query_service import QueryService, QueryServiceClient
from .sessions import InMemorySessionRepository, SessionRepository

__all__ = [
    "DatasetStore",
    "DatasetStoreClient",
    "InMemoryNotificationSink",
    "InMemorySessionRepository",
    "LoggingNotificationSink",
    "Notification",
    "NotificationSink",
    "ProgressCallback",
    "QueryService",
    "QueryServiceClient",
    "SessionRepository",
    "emit",
]
