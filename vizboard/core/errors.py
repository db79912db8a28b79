"""Error taxonomy shared by the dashboard engine and its collaborators."""
from __future__ import annotations


class DashboardError(Exception):
    """Base class for user-facing failures.

    ``title`` is the short heading shown to the user, ``detail`` the longer
    explanation.  ``message`` combines both the way the dashboard displays it.
    """

    title = "Request Failed"
    default_detail = "Failed to generate dashboard"

    def __init__(self, detail: str | None = None, *, title: str | None = None) -> None:
        self.detail = detail or self.default_detail
        if title:
            self.title = title
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return f"{self.title}: {self.detail}"


class ValidationError(DashboardError):
    """Raised for input rejected locally (empty query, malformed JSON)."""

    title = "Validation Error"
    default_detail = "The supplied input is not valid."


class NetworkError(DashboardError):
    title = "Connection Error"
    default_detail = "Unable to connect to the server. Please check if the backend is running."


class RequestTimeoutError(DashboardError):
    title = "Request Timeout"
    default_detail = "The request took too long to complete. Please try again."


class ServerError(DashboardError):
    """Non-2xx response; ``detail`` is the server supplied message verbatim."""

    title = "Server Error"
    default_detail = "The server returned an error."

    def __init__(self, detail: str | None = None, *, status_code: int | None = None, title: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(detail, title=title)


class UploadError(DashboardError):
    title = "Upload failed"
    default_detail = "An error occurred during upload"


class DashboardNotReadyError(DashboardError):
    title = "No Dashboard"
    default_detail = "Generate a dashboard before changing filters or tables."


__all__ = [
    "DashboardError",
    "DashboardNotReadyError",
    "NetworkError",
    "RequestTimeoutError",
    "ServerError",
    "UploadError",
    "ValidationError",
]
