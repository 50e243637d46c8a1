import os
import threading
import time
from datetime import datetime

from mdsync.services.file_io import FileContent, FileMetadata, StorageError, WriteResult


class FakeStorage:
    """In-memory storage backend that records every read and write."""

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.sizes = {}
        self.read_errors = {}
        self.reads = []
        self.writes = []
        self.fail_writes = None
        self.write_delay = 0.0
        self.read_delay = 0.0
        self._lock = threading.Lock()

    def read(self, path):
        if self.read_delay:
            time.sleep(self.read_delay)
        self.reads.append(path)
        if path in self.read_errors:
            raise StorageError(self.read_errors[path], kind="io_error")
        if path not in self.files:
            raise StorageError("File does not exist", kind="not_found")
        content = self.files[path]
        metadata = FileMetadata(
            path=path,
            name=os.path.basename(path),
            size=len(content.encode("utf-8")),
            modified=datetime.now(),
            extension=os.path.splitext(path)[1],
        )
        return FileContent(path=path, content=content, metadata=metadata)

    def write(self, path, content):
        if self.write_delay:
            time.sleep(self.write_delay)
        with self._lock:
            self.writes.append((path, content))
            if self.fail_writes:
                return WriteResult(False, path, self.fail_writes)
            self.files[path] = content
        return WriteResult(True, path)

    def file_size(self, path):
        if path in self.sizes:
            return self.sizes[path]
        content = self.files.get(path)
        return None if content is None else len(content.encode("utf-8"))

    def list_markdown_files(self, root):
        prefix = root.rstrip("/") + "/"
        return [
            FileMetadata(path=path, name=os.path.basename(path), size=len(text), modified=datetime.now())
            for path, text in sorted(self.files.items())
            if path.startswith(prefix)
        ]


class RecordingWatcher:
    """Stands in for DirectoryWatcher where only watch/unwatch calls matter."""

    def __init__(self):
        self.calls = []

    def watch(self, root):
        self.calls.append(("watch", root))

    def unwatch(self, root):
        self.calls.append(("unwatch", root))
        return True
