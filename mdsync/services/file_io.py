"""Storage backend: safe markdown file read/write helpers."""

from __future__ import annotations

import errno
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

MARKDOWN_EXTENSIONS = (".md", ".markdown")
UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|\x00]')


@dataclass(slots=True)
class FileMetadata:
    path: str
    name: str
    size: int
    modified: datetime
    is_directory: bool = False
    extension: str = ""


@dataclass(slots=True)
class FileContent:
    path: str
    content: str
    metadata: FileMetadata


@dataclass(slots=True)
class WriteResult:
    success: bool
    path: str
    error: str | None = None


class StorageError(RuntimeError):
    def __init__(self, message: str, *, kind: str = "io_error") -> None:
        super().__init__(message)
        self.kind = kind


class StorageBackend(Protocol):
    def read(self, path: str) -> FileContent: ...

    def write(self, path: str, content: str) -> WriteResult: ...

    def file_size(self, path: str) -> int | None: ...

    def list_markdown_files(self, root: str) -> list[FileMetadata]: ...


def is_markdown_file(path: str) -> bool:
    return os.path.splitext(str(path or ""))[1].lower() in MARKDOWN_EXTENSIONS


def is_valid_filename(filename: str) -> bool:
    return filename_validation_error(filename) is None


def filename_validation_error(filename: str) -> str | None:
    text = str(filename or "")
    if not text.strip():
        return "Filename cannot be empty"
    if UNSAFE_FILENAME_CHARS.search(text):
        return 'Filename contains invalid characters: / \\ : * ? " < > |'
    if text in {".", ".."}:
        return 'Filename cannot be "." or ".."'
    return None


def atomic_write_text(path: str, text: str, *, encoding: str = "utf-8") -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=target.name + ".", suffix=".tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(text)
        os.replace(tmp_path, target)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError:
                pass


def _metadata_for(path: str) -> FileMetadata:
    stat = os.stat(path)
    return FileMetadata(
        path=path,
        name=os.path.basename(path),
        size=int(stat.st_size),
        modified=datetime.fromtimestamp(stat.st_mtime),
        is_directory=os.path.isdir(path),
        extension=os.path.splitext(path)[1],
    )


class FileSystemStorage:
    """Local-disk storage for markdown documents. Writes are all-or-nothing."""

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def read(self, path: str) -> FileContent:
        if not is_markdown_file(path):
            raise StorageError("Only markdown files are supported", kind="invalid_file_type")
        try:
            with open(path, "r", encoding=self._encoding, newline="") as handle:
                content = handle.read()
            metadata = _metadata_for(path)
        except FileNotFoundError as exc:
            raise StorageError("File does not exist", kind="not_found") from exc
        except PermissionError as exc:
            raise StorageError("Permission denied", kind="permission_denied") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(str(exc), kind="io_error") from exc
        return FileContent(path=path, content=content, metadata=metadata)

    def write(self, path: str, content: str) -> WriteResult:
        if not is_markdown_file(path):
            return WriteResult(False, path, "INVALID_FILE_TYPE: Only markdown files are supported")
        try:
            atomic_write_text(path, content, encoding=self._encoding)
        except PermissionError:
            return WriteResult(False, path, "PERMISSION_DENIED: Permission denied")
        except OSError as exc:
            if exc.errno == errno.ENOSPC:
                return WriteResult(False, path, "DISK_FULL: No space left on device")
            return WriteResult(False, path, f"UNKNOWN_ERROR: {exc}")
        return WriteResult(True, path)

    def file_size(self, path: str) -> int | None:
        try:
            return int(os.stat(path).st_size)
        except OSError:
            return None

    def list_markdown_files(self, root: str) -> list[FileMetadata]:
        out: list[FileMetadata] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(name for name in dirnames if not name.startswith("."))
            for name in sorted(filenames):
                if not is_markdown_file(name):
                    continue
                try:
                    out.append(_metadata_for(os.path.join(dirpath, name)))
                except OSError:
                    continue
        return out
