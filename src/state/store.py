"""Shared mutable state abstraction + in-memory implementation.

The rate limiter and the weather cache are written against StateStore so
the backing map (and its locking strategy) can be swapped without touching
policy code.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class StateStore(ABC):
    """Abstract key-value store holding process-wide state."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value for key, or None if absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns True if it was present."""
        ...

    @abstractmethod
    def size(self) -> int:
        ...

    @abstractmethod
    def items(self) -> list[tuple[str, Any]]:
        """Snapshot of all (key, value) pairs."""
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def locked(self):
        """Context manager grouping several operations into one critical section."""
        ...


class InMemoryStore(StateStore):
    """Dict guarded by a re-entrant lock. Safe across threads and tasks."""

    def __init__(self):
        self._data: dict[str, Any] = {}
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def items(self) -> list[tuple[str, Any]]:
        with self._lock:
            return list(self._data.items())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
