"""JSON persistence for the editor core settings, addressed by dot keys."""

from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

from mdsync.services.file_io import atomic_write_text


class SettingsStoreError(RuntimeError):
    """Raised when the settings file cannot be written."""


def deep_merge_defaults(data: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Fill in missing keys from ``defaults``; values already in ``data`` win."""
    merged = deepcopy(dict(data))
    for key, fallback in defaults.items():
        present = merged.get(key)
        if key not in merged:
            merged[key] = deepcopy(fallback)
        elif isinstance(present, dict) and isinstance(fallback, dict):
            merged[key] = deep_merge_defaults(present, fallback)
    return merged


def _split_key(key: str) -> list[str]:
    parts = str(key or "").split(".")
    if not key or any(not part for part in parts):
        raise ValueError(f"Invalid settings key: {key!r}")
    return parts


def dot_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    if not key:
        return data
    node: Any = data
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def dot_set(data: dict[str, Any], key: str, value: Any) -> None:
    *sections, leaf = _split_key(key)
    node = data
    for part in sections:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value


class JsonSettingsStore:
    """Settings dict backed by one JSON file, or by nothing when not persistent."""

    def __init__(self, path: Path | None, defaults: Mapping[str, Any], *, persistent: bool = True) -> None:
        self.path = Path(path) if path is not None else None
        self.defaults: dict[str, Any] = deepcopy(dict(defaults))
        self.data: dict[str, Any] = {}
        self.dirty = False
        self.last_error: str | None = None
        self.persistent = bool(persistent) and self.path is not None

    def _read_file(self) -> tuple[dict[str, Any] | None, str | None]:
        assert self.path is not None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            return None, str(exc)
        if not isinstance(raw, dict):
            return None, f"Settings root in '{self.path}' must be a JSON object, found {type(raw).__name__}."
        return raw, None

    def load(self) -> dict[str, Any]:
        self.last_error = None
        if not self.persistent:
            self.data = deep_merge_defaults(self.data, self.defaults)
            self.dirty = False
            return self.data

        assert self.path is not None
        if not self.path.exists():
            # First run: defaults only, written on the next save.
            self.data = deep_merge_defaults({}, self.defaults)
            self.dirty = True
            return self.data

        loaded, error = self._read_file()
        if loaded is None:
            # The broken file is left untouched; whatever was loaded before stays.
            self.last_error = error
            self.data = deep_merge_defaults(self.data, self.defaults)
        else:
            self.data = deep_merge_defaults(loaded, self.defaults)
        self.dirty = False
        return self.data

    def save(self) -> None:
        if not self.persistent:
            self.dirty = False
            return
        assert self.path is not None
        try:
            atomic_write_text(str(self.path), json.dumps(self.data, indent=2, sort_keys=True))
        except OSError as exc:
            raise SettingsStoreError(f"Could not write settings file '{self.path}': {exc}") from exc
        self.dirty = False
        self.last_error = None

    def get(self, key: str, default: Any = None) -> Any:
        return dot_get(self.data, key, default)

    def set(self, key: str, value: Any) -> bool:
        if self.get(key) == value:
            return False
        dot_set(self.data, key, value)
        self.dirty = True
        return True

