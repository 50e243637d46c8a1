from __future__ import annotations

from pathlib import Path
from typing import Any

from mdsync.settings_models import (
    DEFAULT_AUTOSAVE_DEBOUNCE_MS,
    DEFAULT_SAVE_TIMEOUT_MS,
    DEFAULT_SELF_WRITE_GRACE_MS,
    DEFAULT_WATCH_POLL_INTERVAL_MS,
    LARGE_FILE_NOTICE_THRESHOLD_BYTES,
    LARGE_FILE_WARNING_THRESHOLD_BYTES,
    SettingsPaths,
    default_editor_settings,
)
from mdsync.settings_store import JsonSettingsStore, deep_merge_defaults


def _clamped_int(value: object, *, default: int, low: int, high: int) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


class EditorSettingsManager:
    """Loads, normalizes and persists the editor core settings."""

    def __init__(self, path: Path | None = None, *, persistent: bool = True) -> None:
        if path is None and persistent:
            path = SettingsPaths.default().settings_file
        self._store = JsonSettingsStore(path, default_editor_settings(), persistent=persistent)
        self._store.load()
        self._store.data = self.normalize(self._store.data)

    @classmethod
    def in_memory(cls, overrides: dict[str, Any] | None = None) -> "EditorSettingsManager":
        manager = cls(None, persistent=False)
        for key, value in (overrides or {}).items():
            manager._store.set(key, value)
        manager._store.data = manager.normalize(manager._store.data)
        return manager

    @property
    def last_error(self) -> str | None:
        return self._store.last_error

    @property
    def dirty(self) -> bool:
        return self._store.dirty

    def load(self) -> dict[str, Any]:
        self._store.load()
        self._store.data = self.normalize(self._store.data)
        return self._store.data

    def save(self) -> None:
        self._store.save()

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        changed = self._store.set(key, value)
        if changed:
            self._store.data = self.normalize(self._store.data)
        return changed

    @staticmethod
    def normalize(data: dict[str, Any]) -> dict[str, Any]:
        defaults = default_editor_settings()
        data = deep_merge_defaults(data if isinstance(data, dict) else {}, defaults)

        autosave = data.get("autosave")
        if not isinstance(autosave, dict):
            autosave = dict(defaults["autosave"])
        autosave["enabled"] = bool(autosave.get("enabled", True))
        autosave["debounce_ms"] = _clamped_int(
            autosave.get("debounce_ms"), default=DEFAULT_AUTOSAVE_DEBOUNCE_MS, low=50, high=30_000
        )
        autosave["save_timeout_ms"] = _clamped_int(
            autosave.get("save_timeout_ms"), default=DEFAULT_SAVE_TIMEOUT_MS, low=100, high=600_000
        )
        data["autosave"] = autosave

        switching = data.get("switching")
        if not isinstance(switching, dict):
            switching = dict(defaults["switching"])
        switching["large_save_notice_bytes"] = _clamped_int(
            switching.get("large_save_notice_bytes"),
            default=LARGE_FILE_NOTICE_THRESHOLD_BYTES,
            low=0,
            high=1 << 40,
        )
        switching["large_load_warning_bytes"] = _clamped_int(
            switching.get("large_load_warning_bytes"),
            default=LARGE_FILE_WARNING_THRESHOLD_BYTES,
            low=0,
            high=1 << 40,
        )
        data["switching"] = switching

        watcher = data.get("watcher")
        if not isinstance(watcher, dict):
            watcher = dict(defaults["watcher"])
        watcher["poll_interval_ms"] = _clamped_int(
            watcher.get("poll_interval_ms"), default=DEFAULT_WATCH_POLL_INTERVAL_MS, low=100, high=60_000
        )
        watcher["self_write_grace_ms"] = _clamped_int(
            watcher.get("self_write_grace_ms"), default=DEFAULT_SELF_WRITE_GRACE_MS, low=0, high=60_000
        )
        data["watcher"] = watcher

        view = data.get("view")
        if not isinstance(view, dict):
            view = dict(defaults["view"])
        mode = str(view.get("last_mode") or "").strip().lower()
        view["last_mode"] = mode if mode in {"source", "rendered"} else "rendered"
        view["normalize_source_on_blur"] = bool(view.get("normalize_source_on_blur", False))
        data["view"] = view
        return data
