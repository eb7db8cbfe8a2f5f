# failure_cache.py
# -------------------------------------------------------------------
# Persistent "last failed on" cache shared by the fetchers.
# One JSON object per fetcher: {lookup key: "YYYY-MM-DD"}.
# A key younger than EXPIRY_DAYS blocks new attempts; success deletes it.
# -------------------------------------------------------------------

import os
import json
import datetime as dt
from typing import Dict, Optional

EXPIRY_DAYS = 30
LOG_DIR = "log"

CACHE_FILES = {
    "title": "title-fetch-failures.json",
    "description": "description-fetch-failures.json",
    "github-description": "github-description-failures.json",
}


def _today() -> dt.date:
    return dt.date.today()


class FailureCache:
    def __init__(self, path: str, expiry_days: int = EXPIRY_DAYS):
        self.path = path
        self.expiry_days = expiry_days
        self.entries: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self):
        try:
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.entries, f, indent=2)
        except OSError as e:
            print(f"[cache] could not save {self.path}: {e}")

    def age_days(self, key: str, today: Optional[dt.date] = None) -> Optional[int]:
        stamp = self.entries.get(key)
        if stamp is None:
            return None
        try:
            failed_on = dt.date.fromisoformat(stamp[:10])
        except (TypeError, ValueError):
            return None
        return ((today or _today()) - failed_on).days

    def is_expired(self, key: str, today: Optional[dt.date] = None) -> bool:
        age = self.age_days(key, today)
        # unreadable dates are retried
        return age is None or age >= self.expiry_days

    def is_blocked(self, key: str, today: Optional[dt.date] = None) -> bool:
        """True while a recent failure should stop another attempt."""
        return key in self.entries and not self.is_expired(key, today)

    def record_failure(self, key: str, today: Optional[dt.date] = None):
        self.entries[key] = (today or _today()).isoformat()
        self._save()

    def clear(self, key: str) -> bool:
        if key not in self.entries:
            return False
        del self.entries[key]
        self._save()
        return True

    def __contains__(self, key) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)


_OPEN: Dict[str, FailureCache] = {}


def open_cache(path: str) -> FailureCache:
    """One instance per file per process; loaded on first use."""
    path = os.path.abspath(path)
    if path not in _OPEN:
        _OPEN[path] = FailureCache(path)
    return _OPEN[path]


def for_name(name: str, log_dir: str = LOG_DIR) -> FailureCache:
    return open_cache(os.path.join(log_dir, CACHE_FILES[name]))


def forget_open_caches():
    _OPEN.clear()
