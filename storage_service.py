# storage_service.py
"""
Per-client key/value store for UI state (hidden posts and comments, project
history, user settings). Each client gets one JSON file mapping key ->
serialized value, with an in-memory cache in front of it.
"""
import copy
import json
import logging
import re
import threading
from pathlib import Path

log = logging.getLogger(__name__)

STORAGE_KEYS = {
    "HIDDEN_POSTS": "hiddenPosts",
    "HIDDEN_COMMENTS": "hiddenComments",
    "PROJECT_HISTORY": "codeGeneratorProjectHistory",
    "EMAIL_PROVIDER": "isEmailProvider",
    "USER_SETTINGS": "userSettings",
}
MAX_PROJECT_HISTORY = 50

_SAFE_CLIENT_ID = re.compile(r"[^A-Za-z0-9_-]")


def safe_client_id(client_id: str) -> str:
    cleaned = _SAFE_CLIENT_ID.sub("", client_id or "")[:64]
    return cleaned or "anonymous"


class StorageService:
    def __init__(self, root: Path, client_id: str):
        self.path = Path(root) / f"{safe_client_id(client_id)}.json"
        self._cache: dict = {}
        self._listeners: dict[str, list] = {}
        self._lock = threading.RLock()

    # ---------- raw file ----------

    def _read_raw(self) -> dict:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text("utf-8"))
        return data if isinstance(data, dict) else {}

    def _write_raw(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
        tmp.replace(self.path)

    # ---------- cached access ----------

    def _get_item(self, key: str, default):
        with self._lock:
            if key in self._cache:
                return copy.deepcopy(self._cache[key])
            try:
                stored = self._read_raw().get(key)
                value = json.loads(stored) if stored else default
            except (OSError, ValueError) as e:
                log.error("Storage read error for key %s: %s", key, e)
                return default
            self._cache[key] = value
            return copy.deepcopy(value)

    def _set_item(self, key: str, value) -> None:
        with self._lock:
            self._cache[key] = copy.deepcopy(value)
            try:
                data = self._read_raw()
                data[key] = json.dumps(value, ensure_ascii=False)
                self._write_raw(data)
            except (OSError, ValueError, TypeError) as e:
                log.error("Storage write error for key %s: %s", key, e)
                return
        self._notify(key, value)

    def _remove_item(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)
            try:
                data = self._read_raw()
                if data.pop(key, None) is not None:
                    self._write_raw(data)
            except (OSError, ValueError) as e:
                log.error("Storage remove error for key %s: %s", key, e)
                return
        self._notify(key, None)

    def clear_cache(self, key: str | None = None) -> None:
        with self._lock:
            if key:
                self._cache.pop(key, None)
            else:
                self._cache.clear()

    # ---------- hidden posts ----------

    def get_hidden_posts(self) -> list:
        return self._get_item(STORAGE_KEYS["HIDDEN_POSTS"], [])

    def add_hidden_post(self, post_id: str) -> None:
        hidden = self.get_hidden_posts()
        if post_id not in hidden:
            hidden.append(post_id)
            self._set_item(STORAGE_KEYS["HIDDEN_POSTS"], hidden)

    def remove_hidden_post(self, post_id: str) -> None:
        hidden = [p for p in self.get_hidden_posts() if p != post_id]
        self._set_item(STORAGE_KEYS["HIDDEN_POSTS"], hidden)

    def is_post_hidden(self, post_id: str) -> bool:
        return post_id in self.get_hidden_posts()

    # ---------- hidden comments ----------

    def get_hidden_comments(self) -> list:
        return self._get_item(STORAGE_KEYS["HIDDEN_COMMENTS"], [])

    def add_hidden_comment(self, comment_id: str) -> None:
        hidden = self.get_hidden_comments()
        if comment_id not in hidden:
            hidden.append(comment_id)
            self._set_item(STORAGE_KEYS["HIDDEN_COMMENTS"], hidden)

    def remove_hidden_comment(self, comment_id: str) -> None:
        hidden = [c for c in self.get_hidden_comments() if c != comment_id]
        self._set_item(STORAGE_KEYS["HIDDEN_COMMENTS"], hidden)

    def set_hidden_comments(self, comment_ids: list) -> None:
        self._set_item(STORAGE_KEYS["HIDDEN_COMMENTS"], list(comment_ids))

    def is_comment_hidden(self, comment_id: str) -> bool:
        return comment_id in self.get_hidden_comments()

    # ---------- project history ----------

    def get_project_history(self) -> list:
        return self._get_item(STORAGE_KEYS["PROJECT_HISTORY"], [])

    def add_project_to_history(self, project: dict) -> None:
        history = self.get_project_history()
        history.insert(0, project)
        self._set_item(STORAGE_KEYS["PROJECT_HISTORY"], history[:MAX_PROJECT_HISTORY])

    def clear_project_history(self) -> None:
        self._set_item(STORAGE_KEYS["PROJECT_HISTORY"], [])

    # ---------- email provider flag ----------

    def get_email_provider_flag(self) -> bool:
        value = self._get_item(STORAGE_KEYS["EMAIL_PROVIDER"], False)
        return value == "true" if isinstance(value, str) else bool(value)

    def set_email_provider_flag(self, is_provider: bool) -> None:
        self._set_item(STORAGE_KEYS["EMAIL_PROVIDER"], "true" if is_provider else "false")

    def remove_email_provider_flag(self) -> None:
        self._remove_item(STORAGE_KEYS["EMAIL_PROVIDER"])

    # ---------- user settings ----------

    def get_user_settings(self) -> dict:
        return self._get_item(STORAGE_KEYS["USER_SETTINGS"], {})

    def set_user_setting(self, key: str, value) -> None:
        current = self.get_user_settings()
        current[key] = value
        self._set_item(STORAGE_KEYS["USER_SETTINGS"], current)

    def get_user_setting(self, key: str, default=None):
        value = self.get_user_settings().get(key)
        return default if value is None else value

    # ---------- maintenance ----------

    def get_storage_usage(self) -> dict:
        try:
            data = self._read_raw()
        except (OSError, ValueError) as e:
            log.error("Storage usage read error: %s", e)
            data = {}
        return {key: len(data.get(key) or "") for key in STORAGE_KEYS.values()}

    def clear_all_storage(self) -> None:
        with self._lock:
            self._cache.clear()
            try:
                data = self._read_raw()
                for key in STORAGE_KEYS.values():
                    data.pop(key, None)
                self._write_raw(data)
            except (OSError, ValueError) as e:
                log.error("Storage clear error: %s", e)

    # ---------- change notification ----------

    def subscribe(self, key: str, callback):
        """Call ``callback(value)`` after every write to ``key``; returns an unsubscribe function."""
        self._listeners.setdefault(key, []).append(callback)

        def unsubscribe():
            callbacks = self._listeners.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _notify(self, key: str, value) -> None:
        for callback in list(self._listeners.get(key, [])):
            callback(value)
