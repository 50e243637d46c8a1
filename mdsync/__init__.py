"""Markdown editing core keeping source text and a rendered tree in step."""

from mdsync.editor_core import EditorCore

__version__ = "0.1.0"

__all__ = ["EditorCore", "__version__"]
