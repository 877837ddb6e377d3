"""
Local key-value cache for API responses.

A JSON file mirror of the browser's localStorage: every key stores the last
payload and when it was written.
"""
import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


def is_data_changed(old: Any, new: Any) -> bool:
    """Compare two payloads by their canonical JSON form."""
    return json.dumps(old, sort_keys=True, default=str) != json.dumps(new, sort_keys=True, default=str)


class LocalCache:
    """
    Key-value cache persisted to a JSON file.

    Without a path the cache lives in memory only.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None, clock=time.time):
        self.path = Path(path) if path else None
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Dict[str, Any]] = self._load()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path or not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(self._entries, f, default=str)
        os.replace(tmp_path, self.path)

    def get(self, key: str, max_age: Optional[float] = None) -> Any:
        """
        Cached value for `key`, or None when absent or older than `max_age` seconds.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if max_age is not None and self._clock() - entry.get("timestamp", 0) > max_age:
            return None
        return entry.get("data")

    def set(self, key: str, data: Any) -> None:
        with self._lock:
            self._entries[key] = {"data": data, "timestamp": self._clock()}
            self._save()

    def clear(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                self._save()

    def clear_all(self) -> None:
        with self._lock:
            self._entries = {}
            self._save()
