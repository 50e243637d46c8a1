from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, TypedDict

ViewModeName = Literal["source", "rendered"]


class AutosaveSettings(TypedDict, total=False):
    enabled: bool
    debounce_ms: int
    save_timeout_ms: int


class SwitchingSettings(TypedDict, total=False):
    large_save_notice_bytes: int
    large_load_warning_bytes: int


class WatcherSettings(TypedDict, total=False):
    poll_interval_ms: int
    self_write_grace_ms: int


class ViewSettings(TypedDict, total=False):
    last_mode: ViewModeName
    normalize_source_on_blur: bool


class EditorSettings(TypedDict, total=False):
    autosave: AutosaveSettings
    switching: SwitchingSettings
    watcher: WatcherSettings
    view: ViewSettings


DEFAULT_AUTOSAVE_DEBOUNCE_MS = 1000
DEFAULT_SAVE_TIMEOUT_MS = 30_000
LARGE_FILE_NOTICE_THRESHOLD_BYTES = 10_240
LARGE_FILE_WARNING_THRESHOLD_BYTES = 5_242_880
DEFAULT_WATCH_POLL_INTERVAL_MS = 1500
# Watcher events for a path the editor just wrote are ignored for this long.
DEFAULT_SELF_WRITE_GRACE_MS = 3000

_DEFAULT_EDITOR_SETTINGS: EditorSettings = {
    "autosave": {
        "enabled": True,
        "debounce_ms": DEFAULT_AUTOSAVE_DEBOUNCE_MS,
        "save_timeout_ms": DEFAULT_SAVE_TIMEOUT_MS,
    },
    "switching": {
        "large_save_notice_bytes": LARGE_FILE_NOTICE_THRESHOLD_BYTES,
        "large_load_warning_bytes": LARGE_FILE_WARNING_THRESHOLD_BYTES,
    },
    "watcher": {
        "poll_interval_ms": DEFAULT_WATCH_POLL_INTERVAL_MS,
        "self_write_grace_ms": DEFAULT_SELF_WRITE_GRACE_MS,
    },
    "view": {
        "last_mode": "rendered",
        "normalize_source_on_blur": False,
    },
}


def default_editor_settings() -> dict[str, Any]:
    return deepcopy(dict(_DEFAULT_EDITOR_SETTINGS))


@dataclass(frozen=True)
class SettingsPaths:
    settings_dir: Path

    @classmethod
    def default(cls) -> "SettingsPaths":
        return cls(settings_dir=Path.home() / ".mdsync")

    @property
    def settings_file(self) -> Path:
        return self.settings_dir / "settings.json"
