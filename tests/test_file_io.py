import tempfile
import unittest
from pathlib import Path

from mdsync.services.file_io import (
    FileSystemStorage,
    StorageError,
    filename_validation_error,
    is_markdown_file,
    is_valid_filename,
)


class TestFilenames(unittest.TestCase):
    def test_markdown_extensions(self):
        self.assertTrue(is_markdown_file("notes.md"))
        self.assertTrue(is_markdown_file("NOTES.Markdown"))
        self.assertFalse(is_markdown_file("notes.txt"))

    def test_filename_validation(self):
        self.assertTrue(is_valid_filename("notes.md"))
        self.assertEqual(filename_validation_error(""), "Filename cannot be empty")
        self.assertIsNotNone(filename_validation_error("a/b.md"))
        self.assertIsNotNone(filename_validation_error("what?.md"))
        self.assertIsNotNone(filename_validation_error(".."))


class TestFileSystemStorage(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.storage = FileSystemStorage()

    def tearDown(self):
        self._tmp.cleanup()

    def test_write_then_read(self):
        path = str(self.root / "sub" / "doc.md")
        result = self.storage.write(path, "hello\r\nworld")
        self.assertTrue(result.success)
        loaded = self.storage.read(path)
        self.assertEqual(loaded.content, "hello\r\nworld")
        self.assertEqual(loaded.metadata.name, "doc.md")
        self.assertEqual(self.storage.file_size(path), 12)

    def test_read_errors_carry_kind(self):
        with self.assertRaises(StorageError) as ctx:
            self.storage.read(str(self.root / "missing.md"))
        self.assertEqual(ctx.exception.kind, "not_found")
        with self.assertRaises(StorageError) as ctx:
            self.storage.read(str(self.root / "doc.txt"))
        self.assertEqual(ctx.exception.kind, "invalid_file_type")

    def test_write_rejects_other_file_types(self):
        result = self.storage.write(str(self.root / "doc.txt"), "x")
        self.assertFalse(result.success)
        self.assertTrue(result.error.startswith("INVALID_FILE_TYPE"))

    def test_missing_file_size(self):
        self.assertIsNone(self.storage.file_size(str(self.root / "nope.md")))

    def test_list_markdown_files(self):
        (self.root / "a.md").write_text("a", encoding="utf-8")
        (self.root / "b.txt").write_text("b", encoding="utf-8")
        (self.root / "nested").mkdir()
        (self.root / "nested" / "c.markdown").write_text("c", encoding="utf-8")
        (self.root / ".hidden").mkdir()
        (self.root / ".hidden" / "d.md").write_text("d", encoding="utf-8")
        names = [meta.name for meta in self.storage.list_markdown_files(str(self.root))]
        self.assertEqual(names, ["a.md", "c.markdown"])


if __name__ == "__main__":
    unittest.main()
