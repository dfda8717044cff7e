# agrichain/preferences.py
from __future__ import annotations

import json
import os
import tempfile
import threading
from typing import Any, Dict

ONBOARDING_KEY = "has_seen_onboarding"


class PreferenceStore:
    """
    Small JSON-file key/value store (first-run flags and similar).
    A missing or unreadable file reads as empty; writes replace the file atomically.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            print(f"⚠️ Preferences unreadable at {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        folder = os.path.dirname(self.path) or "."
        os.makedirs(folder, exist_ok=True)
        # unique temp name per writer; several worker processes share the file
        with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=folder, suffix=".tmp", delete=False) as f:
            json.dump(data, f, indent=2, sort_keys=True)
        try:
            os.replace(f.name, self.path)
        except OSError:
            os.unlink(f.name)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        return value if isinstance(value, bool) else default

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, bool(value))

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


def onboarding_key(user_id: str) -> str:
    return f"{ONBOARDING_KEY}:{user_id}"


def has_seen_onboarding(store: PreferenceStore, user_id: str) -> bool:
    return store.get_bool(onboarding_key(user_id), False)


def mark_onboarding_complete(store: PreferenceStore, user_id: str) -> None:
    store.set_bool(onboarding_key(user_id), True)
