"""
JSON file store: Infrastructure adapter for the key-value store port.

Each key maps to one JSON file below the data directory; ``/`` in a key
becomes a subdirectory, so ``progress/chat`` lives at ``progress/chat.json``.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

from lexis.domain.errors import PersistenceError
from lexis.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)

SUFFIX = ".json"


class JsonFileStore(KeyValueStore):
    """
    Persists values as JSON files.

    Writes go to a temporary file first and are moved into place with
    ``os.replace``, so a crash never leaves a half-written value behind.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not key or key.startswith("/") or ".." in key.split("/"):
            raise PersistenceError(key, "invalid key")
        parts = [quote(p, safe="") for p in key.split("/")]
        return self.root.joinpath(*parts[:-1], parts[-1] + SUFFIX)

    def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(key, f"read failed: {e}") from e

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(value, ensure_ascii=False, indent=2)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=SUFFIX)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(key, f"write failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(key, f"delete failed: {e}") from e

    def keys(self, prefix: str = "") -> list[str]:
        if not self.root.exists():
            return []
        found = []
        try:
            for path in self.root.rglob(f"*{SUFFIX}"):
                if path.name.startswith(".tmp-"):
                    continue
                rel = path.relative_to(self.root).with_suffix("")
                key = "/".join(unquote(p) for p in rel.parts)
                if key.startswith(prefix):
                    found.append(key)
        except OSError as e:
            raise PersistenceError(prefix or "*", f"listing failed: {e}") from e
        return sorted(found)
