# listing_publisher/services/session_cache.py
"""
Time-to-live key-value stores for platform session state.

The session manager only needs `get(key, default)` and `put(key, value, ttl)`;
anything implementing `SessionCache` can be injected (tests use the in-memory
store, deployments the JSON file store or their own backend).
"""

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SessionCache:
    """Interface for the external session cache."""

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def put(self, key: str, value: Any, ttl: int) -> None:
        raise NotImplementedError

    def forget(self, key: str) -> None:
        raise NotImplementedError

    def put_many(self, values: Dict[str, Any], ttl: int) -> None:
        """Store several keys. Implementations should make this atomic for readers."""
        for key, value in values.items():
            self.put(key, value, ttl)


class MemorySessionCache(SessionCache):
    """Process-local store; entries expire `ttl` seconds after being written."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._entries: Dict[str, tuple] = {}
        self._lock = threading.Lock()

    def get(self, key, default=None):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return default
            return value

    def put(self, key, value, ttl):
        with self._lock:
            self._entries[key] = (value, self._expiry(ttl))

    def put_many(self, values, ttl):
        expires_at = self._expiry(ttl)
        with self._lock:
            for key, value in values.items():
                self._entries[key] = (value, expires_at)

    def forget(self, key):
        with self._lock:
            self._entries.pop(key, None)

    def _expiry(self, ttl: Optional[int]) -> Optional[float]:
        return None if ttl is None else self._clock() + ttl


class FileSessionCache(SessionCache):
    """
    JSON file store so a login survives process restarts.

    The whole file is rewritten on every put (write to a temp file, then
    rename), so readers never see a half-written document.
    """

    def __init__(self, path: str, clock=time.time):
        self.path = Path(path)
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, key, default=None):
        with self._lock:
            entry = self._load().get(key)
        if entry is None:
            return default
        expires_at = entry.get("expires_at")
        if expires_at is not None and expires_at <= self._clock():
            return default
        return entry.get("value", default)

    def put(self, key, value, ttl):
        self.put_many({key: value}, ttl)

    def put_many(self, values, ttl):
        expires_at = None if ttl is None else self._clock() + ttl
        with self._lock:
            data = self._load()
            now = self._clock()
            data = {k: v for k, v in data.items() if v.get("expires_at") is None or v["expires_at"] > now}
            for key, value in values.items():
                data[key] = {"value": value, "expires_at": expires_at}
            self._save(data)

    def forget(self, key):
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Session cache at {self.path} unreadable, starting empty: {e}")
            return {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)
