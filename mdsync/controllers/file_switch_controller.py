"""Serialized transitions between active documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from PySide6.QtCore import QObject, Signal

from mdsync.controllers.directory_watcher import DirectoryWatcher
from mdsync.controllers.persistence_controller import PersistenceCoordinator, SaveResult
from mdsync.services.file_io import StorageBackend
from mdsync.services.path_utils import directory_path, is_path_within_directory, normalize_path
from mdsync.settings_models import LARGE_FILE_NOTICE_THRESHOLD_BYTES, LARGE_FILE_WARNING_THRESHOLD_BYTES

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1_048_576


class SwitchOutcome(str, Enum):
    SWITCHED = "switched"
    DROPPED = "dropped"
    UNCHANGED = "unchanged"
    BLOCKED = "blocked"
    LOAD_FAILED = "load_failed"


@dataclass(slots=True)
class SwitchResult:
    outcome: SwitchOutcome
    path: str | None = None
    error: str | None = None
    save_result: SaveResult | None = None

    @property
    def switched(self) -> bool:
        return self.outcome is SwitchOutcome.SWITCHED


class FileSwitchCoordinator(QObject):
    """Save-before-switch, reentrancy guard and directory-context upkeep.

    A second request arriving while a switch is running is dropped, not
    queued. Notices are advisory: ``notice(level, message)`` with levels
    ``info``, ``warning``, ``error`` and ``success``.
    """

    notice = Signal(str, str)
    activePathChanged = Signal(str)
    fileDirtyChanged = Signal(str, bool)
    loadingChanged = Signal(bool)
    rootChanged = Signal(str)

    def __init__(
        self,
        persistence: PersistenceCoordinator,
        storage: StorageBackend,
        *,
        watcher: DirectoryWatcher | None = None,
        load_directory: Callable[[str], object] | None = None,
        large_save_notice_bytes: int = LARGE_FILE_NOTICE_THRESHOLD_BYTES,
        large_load_warning_bytes: int = LARGE_FILE_WARNING_THRESHOLD_BYTES,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._persistence = persistence
        self._storage = storage
        self._watcher = watcher
        self._load_directory = load_directory
        self.large_save_notice_bytes = int(large_save_notice_bytes)
        self.large_load_warning_bytes = int(large_load_warning_bytes)

        self._switching = False
        self._active_path: str | None = None
        self._previous_path: str | None = None
        self._root_path: str | None = None

    @property
    def active_path(self) -> str | None:
        return self._active_path

    @property
    def previous_path(self) -> str | None:
        return self._previous_path

    @property
    def root_path(self) -> str | None:
        return self._root_path

    @property
    def is_switching(self) -> bool:
        return self._switching

    # ---------- Switching ----------

    def request_switch(self, path: str | None) -> SwitchResult:
        if self._switching:
            logger.debug("Switch already in progress; dropping request for %s", path)
            return SwitchResult(SwitchOutcome.DROPPED, path)
        if not path:
            self._previous_path = None
            return SwitchResult(SwitchOutcome.UNCHANGED, None)
        if path == self._previous_path and path == self._persistence.file_path:
            return SwitchResult(SwitchOutcome.UNCHANGED, path)

        previous = self._previous_path
        self._switching = True
        self.loadingChanged.emit(True)
        try:
            self._set_active(path)

            if previous and previous != path and self._persistence.is_dirty:
                saved = self._save_previous(previous)
                if not saved.success:
                    message = (
                        f"Failed to save {previous}: {saved.error}. "
                        "Please fix the issue before switching files."
                    )
                    self.notice.emit("error", message)
                    self._set_active(previous)
                    return SwitchResult(SwitchOutcome.BLOCKED, path, message, saved)
                self.fileDirtyChanged.emit(previous, False)

            size = self._storage.file_size(path)
            if size and size > self.large_load_warning_bytes:
                self.notice.emit(
                    "warning",
                    f"Loading large file ({size / _BYTES_PER_MB:.1f} MB). This may take a moment...",
                )

            loaded = self._persistence.load_file(path)
            if not loaded.success:
                message = f"Failed to load file: {loaded.error}"
                self.notice.emit("error", message)
                self._set_active(previous)
                return SwitchResult(SwitchOutcome.LOAD_FAILED, path, message)

            self._previous_path = path
            return SwitchResult(SwitchOutcome.SWITCHED, path)
        finally:
            self._switching = False
            self.loadingChanged.emit(False)

    def _save_previous(self, previous: str) -> SaveResult:
        # Two bytes per character approximates UTF-16 storage of the buffer.
        if len(self._persistence.content) * 2 > self.large_save_notice_bytes:
            self.notice.emit("info", "Saving previous file...")
        logger.info("Saving %s before switching", previous)
        return self._persistence.save_sync()

    def retry_save(self) -> SaveResult:
        result = self._persistence.save_sync()
        if result.success:
            self.notice.emit("success", "File saved successfully")
            if result.file_path:
                self.fileDirtyChanged.emit(result.file_path, False)
        else:
            self.notice.emit("error", f"Retry failed: {result.error}")
        return result

    def forget_active(self) -> None:
        self._previous_path = None
        self._set_active(None)

    def _set_active(self, path: str | None) -> None:
        if path == self._active_path:
            return
        self._active_path = path
        self.activePathChanged.emit(path or "")

    # ---------- Directory context ----------

    def open_root(self, root: str) -> None:
        if not root:
            return
        self._replace_root(normalize_path(root) or root)

    def ensure_directory_context(self, file_path: str) -> bool:
        if not file_path:
            logger.warning("ensure_directory_context received an empty path")
            return False
        directory = directory_path(file_path)
        if not directory:
            logger.debug("No parent directory for %s", file_path)
            return False
        root = self._root_path
        if root and is_path_within_directory(file_path, root):
            return False
        self._replace_root(directory)
        return True

    def _replace_root(self, directory: str) -> None:
        old_root = self._root_path
        if old_root and self._watcher is not None:
            self._watcher.unwatch(old_root)
        if self._load_directory is not None:
            self._load_directory(directory)
        self._root_path = directory
        if self._watcher is not None:
            self._watcher.watch(directory)
        logger.info("Directory context is now %s", directory)
        self.rootChanged.emit(directory)
