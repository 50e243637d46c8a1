"""Composition root wiring storage, persistence, views and file switching."""

from __future__ import annotations

import logging
import os

from PySide6.QtCore import QObject, Signal

from mdsync.controllers.directory_watcher import DirectoryWatcher
from mdsync.controllers.file_switch_controller import FileSwitchCoordinator, SwitchResult
from mdsync.controllers.persistence_controller import PersistenceCoordinator, SaveResult
from mdsync.controllers.view_coordinator import DocumentViewCoordinator, ViewMode
from mdsync.rendering_surface import HeadlessRenderingSurface, RenderingSurface
from mdsync.services.file_io import FileMetadata, FileSystemStorage, StorageBackend
from mdsync.services.path_utils import normalize_path
from mdsync.settings_manager import EditorSettingsManager
from mdsync.settings_store import SettingsStoreError

logger = logging.getLogger(__name__)


class EditorCore(QObject):
    notice = Signal(str, str)
    filesChanged = Signal(object)

    def __init__(
        self,
        storage: StorageBackend | None = None,
        *,
        settings: EditorSettingsManager | None = None,
        surface: RenderingSurface | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.settings = settings if settings is not None else EditorSettingsManager()
        self.storage: StorageBackend = storage if storage is not None else FileSystemStorage()
        self.surface: RenderingSurface = surface if surface is not None else HeadlessRenderingSurface(self)
        self._files: list[FileMetadata] = []

        get = self.settings.get
        self.watcher = DirectoryWatcher(
            poll_interval_ms=get("watcher.poll_interval_ms"),
            self_write_grace_ms=get("watcher.self_write_grace_ms"),
            parent=self,
        )
        self.persistence = PersistenceCoordinator(
            self.storage,
            autosave_enabled=get("autosave.enabled"),
            debounce_ms=get("autosave.debounce_ms"),
            save_timeout_ms=get("autosave.save_timeout_ms"),
            parent=self,
        )
        self.view = DocumentViewCoordinator(
            self.surface,
            initial_mode=ViewMode.from_name(get("view.last_mode")),
            normalize_source_on_blur=get("view.normalize_source_on_blur"),
            parent=self,
        )
        self.switcher = FileSwitchCoordinator(
            self.persistence,
            self.storage,
            watcher=self.watcher,
            load_directory=self._load_directory,
            large_save_notice_bytes=get("switching.large_save_notice_bytes"),
            large_load_warning_bytes=get("switching.large_load_warning_bytes"),
            parent=self,
        )

        # Loads and the view's own normalizations share one content-changed slot.
        self.persistence.contentLoaded.connect(self._on_content_changed)
        self.view.normalizationProduced.connect(self._on_content_changed)
        self.view.contentEdited.connect(self.persistence.update_content)
        self.view.conversionWarning.connect(lambda message: self.notice.emit("warning", message))
        self.persistence.saveSucceeded.connect(self.watcher.note_self_write)
        self.watcher.fileChanged.connect(self._on_external_file_change)
        self.switcher.notice.connect(self.notice)

    # ---------- State ----------

    @property
    def active_path(self) -> str | None:
        return self.persistence.file_path

    @property
    def root_path(self) -> str | None:
        return self.switcher.root_path

    @property
    def files(self) -> list[FileMetadata]:
        return list(self._files)

    @property
    def mode(self) -> ViewMode:
        return self.view.mode

    @property
    def is_dirty(self) -> bool:
        return self.persistence.is_dirty

    def current_text(self) -> str:
        return self.view.current_text()

    # ---------- Files ----------

    def open_directory(self, root: str) -> None:
        self.switcher.open_root(root)

    def open_file(self, path: str) -> SwitchResult:
        self.switcher.ensure_directory_context(path)
        return self.switcher.request_switch(path)

    def save(self) -> SaveResult:
        return self.persistence.save_now()

    def retry_save(self) -> SaveResult:
        return self.switcher.retry_save()

    def close_file(self) -> None:
        self.persistence.close_file()
        self.switcher.forget_active()
        self.view.load_external_content("")

    def _load_directory(self, directory: str) -> None:
        self._files = self.storage.list_markdown_files(directory)
        logger.info("Listed %d markdown file(s) under %s", len(self._files), directory)
        self.filesChanged.emit(list(self._files))

    # ---------- Views ----------

    def set_view_mode(self, mode: ViewMode | str) -> ViewMode:
        self.view.set_mode(mode)
        self._remember_mode()
        return self.view.mode

    def toggle_view_mode(self) -> ViewMode:
        self.view.toggle_mode()
        self._remember_mode()
        return self.view.mode

    def edit_source(self, text: str) -> None:
        self.view.user_edit_in_source(text)

    def edit_rendered(self, serialized_html: str) -> str:
        return self.view.user_edit_in_rendered(serialized_html)

    def source_focus_lost(self) -> str:
        return self.view.source_focus_lost()

    def _remember_mode(self) -> None:
        if not self.settings.set("view.last_mode", self.view.mode.value):
            return
        try:
            self.settings.save()
        except SettingsStoreError as exc:
            logger.warning("Could not persist view mode: %s", exc)

    # ---------- Signal handlers ----------

    def _on_content_changed(self, text: str) -> None:
        self.view.load_external_content(text)

    def _on_external_file_change(self, path: str, event_type: str) -> None:
        active = self.persistence.file_path
        if not active or normalize_path(active) != normalize_path(path):
            return
        name = os.path.basename(path)
        if event_type == "deleted":
            self.notice.emit("warning", f"File removed on disk: {name}")
            return
        if self.persistence.is_dirty:
            logger.warning("External change to %s while it has unsaved edits", path)
            self.notice.emit("warning", f"Disk changed for {name} (kept local unsaved edits).")
            return
        result = self.persistence.load_file(active)
        if result.success:
            self.notice.emit("info", f"Reloaded from disk: {name}")

    # ---------- Lifecycle ----------

    def shutdown(self) -> None:
        if self.persistence.is_dirty:
            result = self.persistence.save_sync()
            if not result.success:
                logger.warning("Unsaved changes could not be written on shutdown: %s", result.error)
        self.persistence.shutdown()
        self.watcher.stop()
        if self.settings.dirty:
            try:
                self.settings.save()
            except SettingsStoreError as exc:
                logger.warning("Could not save settings: %s", exc)
