"""Polling change notifications for markdown files under watched roots."""

from __future__ import annotations

import logging
import os
import time

from PySide6.QtCore import QObject, QTimer, Signal

from mdsync.services.file_io import is_markdown_file
from mdsync.services.path_utils import normalize_path
from mdsync.settings_models import DEFAULT_SELF_WRITE_GRACE_MS, DEFAULT_WATCH_POLL_INTERVAL_MS

logger = logging.getLogger(__name__)

FileSignature = tuple[bool, int, int]


def file_signature(path: str) -> FileSignature | None:
    try:
        stat = os.stat(path)
    except FileNotFoundError:
        return (False, 0, 0)
    except OSError:
        return None
    return (True, int(stat.st_mtime_ns), int(stat.st_size))


class DirectoryWatcher(QObject):
    """Emits ``fileChanged(path, event_type)`` with created, modified or deleted."""

    fileChanged = Signal(str, str)

    def __init__(
        self,
        *,
        poll_interval_ms: int = DEFAULT_WATCH_POLL_INTERVAL_MS,
        self_write_grace_ms: int = DEFAULT_SELF_WRITE_GRACE_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.self_write_grace_ms = max(0, int(self_write_grace_ms))
        self._signatures: dict[str, dict[str, FileSignature]] = {}
        self._self_writes: dict[str, float] = {}

        self._poll_timer = QTimer(self)
        self._poll_timer.setInterval(max(1, int(poll_interval_ms)))
        self._poll_timer.timeout.connect(self.poll_now)

    @property
    def poll_timer(self) -> QTimer:
        return self._poll_timer

    def watched_roots(self) -> list[str]:
        return list(self._signatures.keys())

    def is_watching(self, root: str) -> bool:
        return normalize_path(root) in self._signatures

    def watch(self, root: str) -> None:
        key = normalize_path(root)
        if not key or key in self._signatures:
            return
        self._signatures[key] = self._scan(key)
        logger.info("Watching %s", key)
        if not self._poll_timer.isActive():
            self._poll_timer.start()

    def unwatch(self, root: str) -> bool:
        key = normalize_path(root)
        if self._signatures.pop(key, None) is None:
            return False
        logger.info("Stopped watching %s", key)
        if not self._signatures:
            self._poll_timer.stop()
        return True

    def unwatch_all(self) -> None:
        self._signatures.clear()
        self._self_writes.clear()
        self._poll_timer.stop()

    def note_self_write(self, path: str) -> None:
        key = normalize_path(path)
        if not key:
            return
        self._self_writes[key] = time.monotonic() + self.self_write_grace_ms / 1000.0
        sig = file_signature(key)
        if sig is None:
            return
        for root, known in self._signatures.items():
            if key.startswith(root + "/"):
                if sig[0]:
                    known[key] = sig
                else:
                    known.pop(key, None)

    def poll_now(self) -> None:
        now = time.monotonic()
        self._self_writes = {path: until for path, until in self._self_writes.items() if until > now}

        for root in list(self._signatures.keys()):
            previous = self._signatures.get(root)
            if previous is None:
                continue
            current = self._scan(root)
            self._signatures[root] = current

            for path, sig in current.items():
                before = previous.get(path)
                if before == sig:
                    continue
                self._emit_change(path, "created" if before is None else "modified")
            for path in previous.keys() - current.keys():
                self._emit_change(path, "deleted")

    def _emit_change(self, path: str, event_type: str) -> None:
        if path in self._self_writes:
            logger.debug("Ignoring %s event for our own write to %s", event_type, path)
            return
        self.fileChanged.emit(path, event_type)

    def _scan(self, root: str) -> dict[str, FileSignature]:
        out: dict[str, FileSignature] = {}
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = [name for name in dirnames if not name.startswith(".")]
            for name in filenames:
                if not is_markdown_file(name):
                    continue
                path = normalize_path(os.path.join(dirpath, name))
                sig = file_signature(path)
                if sig is not None and sig[0]:
                    out[path] = sig
        return out

    def stop(self) -> None:
        self.unwatch_all()
