"""In-memory key-value store."""

import copy
from typing import Any

from lexis.domain.ports import KeyValueStore


class MemoryStore(KeyValueStore):
    """
    Keeps values in a dict for the lifetime of the process.

    Values are deep-copied on the way in and out so callers cannot mutate
    stored state by accident, mirroring the JSON round trip of the file store.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))
