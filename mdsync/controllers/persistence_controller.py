"""Content buffer, dirty tracking and debounced autosave for the active document."""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from enum import Enum

from PySide6.QtCore import QObject, QTimer, Signal

from mdsync.services.file_io import FileMetadata, StorageBackend, StorageError, WriteResult
from mdsync.settings_models import DEFAULT_AUTOSAVE_DEBOUNCE_MS, DEFAULT_SAVE_TIMEOUT_MS

logger = logging.getLogger(__name__)


class SaveErrorKind(str, Enum):
    NO_FILE_OPEN = "no_file_open"
    WRITE_FAILED = "write_failed"
    TIMEOUT = "timeout"


@dataclass(slots=True)
class SaveResult:
    success: bool
    file_path: str | None = None
    error_kind: SaveErrorKind | None = None
    error: str | None = None


@dataclass(slots=True)
class LoadResult:
    success: bool
    file_path: str
    content: str = ""
    error_kind: str | None = None
    error: str | None = None


@dataclass(slots=True)
class PersistenceState:
    file_path: str | None = None
    content: str = ""
    original_content: str = ""
    is_dirty: bool = False
    loading: bool = False
    saving: bool = False
    error: str | None = None
    metadata: FileMetadata | None = None


class PersistenceCoordinator(QObject):
    """Sole owner of the active document's content string.

    Writes and reads each run on their own one-worker executor and are
    awaited from the calling thread, raced against ``save_timeout_ms``. A
    write that timed out keeps running but never delays the next read.
    """

    contentLoaded = Signal(str)
    dirtyChanged = Signal(bool)
    beforeSave = Signal()
    afterSave = Signal(bool)
    saveSucceeded = Signal(str)
    errorChanged = Signal(str)

    def __init__(
        self,
        storage: StorageBackend,
        *,
        autosave_enabled: bool = True,
        debounce_ms: int = DEFAULT_AUTOSAVE_DEBOUNCE_MS,
        save_timeout_ms: int = DEFAULT_SAVE_TIMEOUT_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._storage = storage
        self.autosave_enabled = bool(autosave_enabled)
        self.debounce_ms = max(0, int(debounce_ms))
        self.save_timeout_ms = max(1, int(save_timeout_ms))

        self._state = PersistenceState()
        self._scheduled_path: str | None = None
        self._inflight: concurrent.futures.Future | None = None
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="mdsync-storage")
        self._read_executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="mdsync-storage-read")

        self._autosave_timer = QTimer(self)
        self._autosave_timer.setSingleShot(True)
        self._autosave_timer.timeout.connect(self._on_autosave_timeout)

    @property
    def state(self) -> PersistenceState:
        return self._state

    @property
    def file_path(self) -> str | None:
        return self._state.file_path

    @property
    def content(self) -> str:
        return self._state.content

    @property
    def is_dirty(self) -> bool:
        return self._state.is_dirty

    @property
    def autosave_timer(self) -> QTimer:
        return self._autosave_timer

    def autosave_pending(self) -> bool:
        return self._autosave_timer.isActive()

    # ---------- Loading ----------

    def load_file(self, path: str) -> LoadResult:
        self._state.loading = True
        self._set_error(None)
        try:
            future = self._read_executor.submit(self._storage.read, path)
            loaded = future.result(timeout=self.save_timeout_ms / 1000.0)
        except concurrent.futures.TimeoutError:
            return self._load_failed(path, "timeout", f"Load operation timed out after {self.save_timeout_ms}ms")
        except StorageError as exc:
            return self._load_failed(path, exc.kind, str(exc))

        self.cancel_autosave()
        self._state = PersistenceState(
            file_path=path,
            content=loaded.content,
            original_content=loaded.content,
            metadata=loaded.metadata,
        )
        self.dirtyChanged.emit(False)
        logger.info("Loaded %s (%d chars)", path, len(loaded.content))
        self.contentLoaded.emit(loaded.content)
        return LoadResult(True, path, content=loaded.content)

    def _load_failed(self, path: str, kind: str, reason: str) -> LoadResult:
        message = f"Failed to load {path}: {reason}"
        logger.warning(message)
        self._state.loading = False
        self._set_error(message)
        return LoadResult(False, path, error_kind=kind, error=message)

    def close_file(self) -> None:
        self.cancel_autosave()
        was_dirty = self._state.is_dirty
        self._state = PersistenceState()
        if was_dirty:
            self.dirtyChanged.emit(False)

    # ---------- Editing ----------

    def update_content(self, text: str) -> None:
        text = str(text or "")
        self._state.content = text
        self._set_dirty(text != self._state.original_content)

        self._autosave_timer.stop()
        self._scheduled_path = None
        if not self.autosave_enabled or not self._state.file_path:
            return
        self._scheduled_path = self._state.file_path
        self._autosave_timer.start(self.debounce_ms)

    def update_original_content(self, text: str) -> None:
        self._state.original_content = str(text or "")
        self._set_dirty(self._state.content != self._state.original_content)

    def cancel_autosave(self) -> None:
        self._autosave_timer.stop()
        self._scheduled_path = None

    def clear_error(self) -> None:
        self._set_error(None)

    # ---------- Saving ----------

    def save_now(self, path_override: str | None = None) -> SaveResult:
        path = path_override or self._state.file_path
        if not path:
            message = "No file is currently open"
            self._set_error(message)
            self.afterSave.emit(False)
            return SaveResult(False, None, SaveErrorKind.NO_FILE_OPEN, message)
        if not self._state.is_dirty:
            self.afterSave.emit(True)
            return SaveResult(True, path)
        return self._write(path)

    def save_sync(self) -> SaveResult:
        """Blocking save for ordered callers; drops any pending autosave first.

        A write that is already in flight is neither cancelled nor awaited.
        """
        self.cancel_autosave()
        path = self._state.file_path
        if not path:
            return SaveResult(False, None, SaveErrorKind.NO_FILE_OPEN, "No file is currently open")
        if not self._state.is_dirty:
            return SaveResult(True, path)
        return self._write(path)

    def _write(self, path: str) -> SaveResult:
        self.beforeSave.emit()
        self._state.saving = True
        self._set_error(None)
        payload = self._state.content

        result: SaveResult
        try:
            self._inflight = self._executor.submit(self._storage.write, path, payload)
            written: WriteResult = self._inflight.result(timeout=self.save_timeout_ms / 1000.0)
        except concurrent.futures.TimeoutError:
            message = f"Save operation timed out after {self.save_timeout_ms}ms"
            result = SaveResult(False, path, SaveErrorKind.TIMEOUT, message)
        except Exception as exc:
            result = SaveResult(False, path, SaveErrorKind.WRITE_FAILED, str(exc) or "Failed to save file")
        else:
            if written.success:
                result = SaveResult(True, path)
            else:
                result = SaveResult(False, path, SaveErrorKind.WRITE_FAILED, written.error or "Failed to save file")
        finally:
            self._inflight = None
            self._state.saving = False

        if result.success:
            self._state.original_content = payload
            self._set_dirty(self._state.content != payload)
            logger.info("Saved %s", path)
            self.saveSucceeded.emit(path)
        else:
            logger.warning("Failed to save %s: %s", path, result.error)
            self._set_error(f"Failed to save {path}: {result.error}")
        self.afterSave.emit(result.success)
        return result

    def _on_autosave_timeout(self) -> None:
        captured = self._scheduled_path
        self._scheduled_path = None
        if not captured or captured != self._state.file_path:
            logger.debug("Skipping autosave for %s; active file changed", captured)
            return
        self.save_now(captured)

    # ---------- Internals ----------

    def _set_dirty(self, dirty: bool) -> None:
        if dirty == self._state.is_dirty:
            return
        self._state.is_dirty = dirty
        self.dirtyChanged.emit(dirty)

    def _set_error(self, message: str | None) -> None:
        if message == self._state.error:
            return
        self._state.error = message
        self.errorChanged.emit(message or "")

    def shutdown(self) -> None:
        self.cancel_autosave()
        for executor in (self._executor, self._read_executor):
            try:
                executor.shutdown(wait=False, cancel_futures=True)
            except Exception:
                executor.shutdown(wait=False)
