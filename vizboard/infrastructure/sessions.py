"""Storage for live dashboard sessions."""
from __future__ import annotations

from typing import Generic, Protocol, TypeVar

T = TypeVar("T")


class SessionRepository(Protocol[T]):
    """Persistence contract for per-session controllers."""

    def next_session_id(self) -> str: ...

    def add(self, session_id: str, item: T) -> None: ...

    def get(self, session_id: str) -> T | None: ...

    def remove(self, session_id: str) -> bool: ...

    def list_ids(self) -> list[str]: ...

    def reset(self) -> None: ...


class InMemorySessionRepository(Generic[T]):
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}
        self._counter = 0

    def next_session_id(self) -> str:
        self._counter += 1
        return f"dash-{self._counter:05d}"

    def add(self, session_id: str, item: T) -> None:
        self._items[session_id] = item

    def get(self, session_id: str) -> T | None:
        return self._items.get(session_id)

    def remove(self, session_id: str) -> bool:
        return self._items.pop(session_id, None) is not None

    def list_ids(self) -> list[str]:
        return list(self._items)

    def reset(self) -> None:
        self._items.clear()
        self._counter = 0
