"""Path helpers for comparing document and root paths across platforms."""

from __future__ import annotations

import re

_TRAILING_SLASHES_RE = re.compile(r"/+$")
_DRIVE_RE = re.compile(r"^[A-Za-z]:$")


def normalize_path(path: str) -> str:
    """Forward slashes only, no trailing slash."""
    return _TRAILING_SLASHES_RE.sub("", str(path or "").replace("\\", "/"))


def directory_path(file_path: str) -> str | None:
    normalized = normalize_path(file_path)
    last_slash = normalized.rfind("/")
    if last_slash <= 0:
        return None
    parent = normalized[:last_slash]
    if _DRIVE_RE.match(parent):
        parent += "/"
    return parent


def is_path_within_directory(child_path: str, parent_path: str) -> bool:
    # Plain prefix match: ".." segments are not resolved.
    return normalize_path(child_path).startswith(normalize_path(parent_path))
