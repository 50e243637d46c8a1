"""Qt-aware coordinators for the editing core."""

from .directory_watcher import DirectoryWatcher
from .file_switch_controller import FileSwitchCoordinator, SwitchOutcome, SwitchResult
from .persistence_controller import (
    LoadResult,
    PersistenceCoordinator,
    PersistenceState,
    SaveErrorKind,
    SaveResult,
)
from .view_coordinator import DocumentViewCoordinator, EditSession, ViewMode

__all__ = [
    "DirectoryWatcher",
    "DocumentViewCoordinator",
    "EditSession",
    "FileSwitchCoordinator",
    "LoadResult",
    "PersistenceCoordinator",
    "PersistenceState",
    "SaveErrorKind",
    "SaveResult",
    "SwitchOutcome",
    "SwitchResult",
    "ViewMode",
]
