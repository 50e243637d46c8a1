"""Rich-text rendering surface contract and a headless implementation."""

from __future__ import annotations

from copy import deepcopy
from typing import Protocol

from PySide6.QtCore import QObject, Signal

from mdsync.services.document_tree import TreeNode, empty_doc
from mdsync.services.tree_html import render_tree_html


class RenderingSurface(Protocol):
    def set_content(self, tree: TreeNode) -> None: ...

    def get_json(self) -> TreeNode: ...

    def get_html(self) -> str: ...


class HeadlessRenderingSurface(QObject):
    """Holds a tree and reproduces it verbatim until the next user edit.

    ``set_content`` is a programmatic replacement and emits nothing;
    ``apply_user_edit`` stands in for typing and emits ``contentChanged``
    with the serialized output.
    """

    contentChanged = Signal(str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._tree: TreeNode = empty_doc()

    def set_content(self, tree: TreeNode) -> None:
        self._tree = deepcopy(tree)

    def get_json(self) -> TreeNode:
        return deepcopy(self._tree)

    def get_html(self) -> str:
        return render_tree_html(self._tree)

    def apply_user_edit(self, tree: TreeNode) -> str:
        self._tree = deepcopy(tree)
        html = self.get_html()
        self.contentChanged.emit(html)
        return html
