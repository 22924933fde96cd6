"""Process-local state store."""

from __future__ import annotations

import threading

from wallet_activity.activity.models import Activity


class InMemoryStateStore:
    """Dict-of-dicts store; load() returns a copy so callers cannot mutate committed state."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Activity]] = {}
        self._lock = threading.Lock()

    def load(self, address: str) -> dict[str, Activity]:
        with self._lock:
            return dict(self._data.get(address, {}))

    def save(self, address: str, activities: dict[str, Activity]) -> None:
        with self._lock:
            self._data[address] = dict(activities)

    def addresses(self) -> list[str]:
        with self._lock:
            return list(self._data)
