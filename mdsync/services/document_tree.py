"""Typed document tree shared by the converter and the rendering surface.

The tree is plain JSON-like data: a ``doc`` root whose ``content`` is an
ordered list of block nodes. Marks live on text nodes only.
"""

from __future__ import annotations

from typing import Any, Iterator, Literal, TypedDict

NodeType = Literal[
    "doc",
    "paragraph",
    "heading",
    "bulletList",
    "orderedList",
    "listItem",
    "blockquote",
    "codeBlock",
    "horizontalRule",
    "table",
    "tableRow",
    "tableCell",
    "tableHeader",
    "image",
    "text",
    "hardBreak",
]
MarkType = Literal["bold", "italic", "strike", "code", "link"]

# Outermost first; also the nesting order used when serializing to HTML.
MARK_ORDER: tuple[str, ...] = ("link", "bold", "italic", "strike", "code")


class Mark(TypedDict, total=False):
    type: MarkType
    attrs: dict[str, Any]


class TreeNode(TypedDict, total=False):
    type: NodeType
    attrs: dict[str, Any]
    content: list["TreeNode"]
    text: str
    marks: list[Mark]


def empty_doc() -> TreeNode:
    return {"type": "doc", "content": []}


def _mark_key(mark: Mark) -> tuple[int, str]:
    mark_type = str(mark.get("type") or "")
    try:
        rank = MARK_ORDER.index(mark_type)
    except ValueError:
        rank = len(MARK_ORDER)
    return rank, mark_type


def canonical_marks(marks: list[Mark] | None) -> list[Mark]:
    """Treat marks as a set: one mark per type, in a fixed order."""
    by_type: dict[str, Mark] = {}
    for mark in marks or []:
        mark_type = str(mark.get("type") or "")
        if mark_type and mark_type not in by_type:
            by_type[mark_type] = mark
    return sorted(by_type.values(), key=_mark_key)


def text_node(text: str, marks: list[Mark] | None = None) -> TreeNode | None:
    if not text:
        return None
    node: TreeNode = {"type": "text", "text": text}
    ordered = canonical_marks(marks)
    if ordered:
        node["marks"] = ordered
    return node


def with_content(node: TreeNode, content: list[TreeNode]) -> TreeNode:
    """Attach ``content`` only when non-empty; empty inline content is omitted."""
    if content:
        node["content"] = content
    return node


def paragraph(content: list[TreeNode] | None = None) -> TreeNode:
    return with_content({"type": "paragraph"}, list(content or []))


def iter_nodes(node: TreeNode) -> Iterator[TreeNode]:
    yield node
    for child in node.get("content", []) or []:
        yield from iter_nodes(child)


def tree_text(node: TreeNode) -> str:
    return "".join(str(item.get("text") or "") for item in iter_nodes(node) if item.get("type") == "text")


def has_mark(node: TreeNode, mark_type: str) -> bool:
    return any(mark.get("type") == mark_type for mark in node.get("marks", []) or [])
