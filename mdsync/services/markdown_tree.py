"""Markup text -> document tree.

The token stream from markdown-it is walked directly into tree nodes. Going
through an HTML DOM first would let the DOM parser add wrapper elements
(``tbody``/``thead``) that the tree schema does not accept.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token

from mdsync.services.document_tree import (
    Mark,
    TreeNode,
    canonical_marks,
    empty_doc,
    paragraph,
    text_node,
    with_content,
)
from mdsync.services.url_sanitizer import sanitize_image_url, sanitize_link_url

logger = logging.getLogger(__name__)

MAX_COLSPAN = 100
MAX_ROWSPAN = 100

_MARK_OPEN = {
    "strong_open": "bold",
    "em_open": "italic",
    "s_open": "strike",
}
_MARK_CLOSE = {
    "strong_close": "bold",
    "em_close": "italic",
    "s_close": "strike",
}


class ParseError(ValueError):
    """Malformed token stream; always recovered inside ``parse_to_tree``."""


def create_markdown_parser() -> MarkdownIt:
    # Raw HTML stays literal text; single newlines become hard breaks.
    return MarkdownIt("commonmark", {"html": False, "breaks": True}).enable(["table", "strikethrough"])


@lru_cache(maxsize=1)
def _shared_parser() -> MarkdownIt:
    return create_markdown_parser()


def parse_to_tree(markup: str) -> TreeNode:
    """Convert markup text into a document tree. Never raises."""
    text = str(markup or "")
    try:
        tokens = _shared_parser().parse(text)
        content, _ = _parse_blocks(tokens, 0)
    except Exception as exc:
        logger.warning("Markup parse failed, falling back to plain paragraphs: %s", exc)
        return _plain_text_tree(text)
    doc = empty_doc()
    doc["content"] = content
    return doc


def _plain_text_tree(text: str) -> TreeNode:
    doc = empty_doc()
    for line in text.splitlines():
        node = text_node(line.strip())
        if node is not None:
            doc["content"].append(paragraph([node]))
    return doc


def _parse_blocks(tokens: Sequence[Token], index: int, close_type: str | None = None) -> tuple[list[TreeNode], int]:
    nodes: list[TreeNode] = []
    while index < len(tokens):
        if close_type is not None and tokens[index].type == close_type:
            return nodes, index + 1
        node, index = _parse_block(tokens, index)
        if node is not None:
            nodes.append(node)
    # Unterminated container: keep what was parsed.
    return nodes, index


def _skip_past(tokens: Sequence[Token], index: int, close_type: str) -> int:
    while index < len(tokens) and tokens[index].type != close_type:
        index += 1
    return index + 1


def _inline_at(tokens: Sequence[Token], index: int) -> list[TreeNode]:
    if index < len(tokens) and tokens[index].type == "inline":
        return parse_inline(tokens[index])
    return []


def _parse_block(tokens: Sequence[Token], index: int) -> tuple[TreeNode | None, int]:
    token = tokens[index]
    kind = token.type

    if kind == "heading_open":
        try:
            level = int(token.tag[1:])
        except ValueError as exc:
            raise ParseError(f"bad heading tag {token.tag!r}") from exc
        node = with_content({"type": "heading", "attrs": {"level": max(1, min(6, level))}}, _inline_at(tokens, index + 1))
        return node, _skip_past(tokens, index + 1, "heading_close")

    if kind == "paragraph_open":
        content = _inline_at(tokens, index + 1)
        return paragraph(content), _skip_past(tokens, index + 1, "paragraph_close")

    if kind in ("bullet_list_open", "ordered_list_open"):
        return _parse_list(tokens, index)

    if kind == "blockquote_open":
        content, next_index = _parse_blocks(tokens, index + 1, "blockquote_close")
        return {"type": "blockquote", "content": content or [paragraph()]}, next_index

    if kind in ("fence", "code_block"):
        return _code_block(token), index + 1

    if kind == "hr":
        return {"type": "horizontalRule"}, index + 1

    if kind == "table_open":
        return _parse_table(tokens, index)

    return None, index + 1


def _code_block(token: Token) -> TreeNode:
    info = (token.info or "").strip()
    language = info.split()[0] if info else ""
    code = token.content or ""
    if code.endswith("\n"):
        code = code[:-1]
    node: TreeNode = {"type": "codeBlock"}
    if language:
        node["attrs"] = {"language": language}
    text = text_node(code)
    if text is not None:
        node["content"] = [text]
    return node


def _parse_list(tokens: Sequence[Token], index: int) -> tuple[TreeNode, int]:
    open_token = tokens[index]
    ordered = open_token.type == "ordered_list_open"
    close_type = "ordered_list_close" if ordered else "bullet_list_close"
    items: list[TreeNode] = []
    index += 1
    while index < len(tokens) and tokens[index].type != close_type:
        if tokens[index].type == "list_item_open":
            content, index = _parse_blocks(tokens, index + 1, "list_item_close")
            items.append({"type": "listItem", "content": content or [paragraph()]})
        else:
            index += 1

    node: TreeNode = {"type": "orderedList" if ordered else "bulletList", "content": items}
    if ordered:
        start = _positive_int(open_token.attrGet("start"), limit=None)
        if start is not None and start != 1:
            node["attrs"] = {"start": start}
    return node, index + 1


def _positive_int(raw: object, *, limit: int | None) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    if value < 1 or (limit is not None and value > limit):
        return None
    return value


def _parse_table(tokens: Sequence[Token], index: int) -> tuple[TreeNode, int]:
    rows: list[TreeNode] = []
    index += 1
    while index < len(tokens) and tokens[index].type != "table_close":
        if tokens[index].type == "tr_open":
            row, index = _parse_table_row(tokens, index)
            rows.append(row)
        else:
            # thead/tbody wrappers have no counterpart in the tree.
            index += 1
    return {"type": "table", "content": rows}, index + 1


def _parse_table_row(tokens: Sequence[Token], index: int) -> tuple[TreeNode, int]:
    cells: list[TreeNode] = []
    header_row = False
    index += 1
    while index < len(tokens) and tokens[index].type != "tr_close":
        kind = tokens[index].type
        if kind in ("th_open", "td_open"):
            header_row = header_row or kind == "th_open"
            cell, index = _parse_table_cell(tokens, index)
            cells.append(cell)
        else:
            index += 1
    if header_row:
        for cell in cells:
            cell["type"] = "tableHeader"
    return {"type": "tableRow", "content": cells}, index + 1


def _parse_table_cell(tokens: Sequence[Token], index: int) -> tuple[TreeNode, int]:
    token = tokens[index]
    is_header = token.type == "th_open"
    # Every cell holds exactly one paragraph, even when empty.
    cell: TreeNode = {
        "type": "tableHeader" if is_header else "tableCell",
        "content": [paragraph(_inline_at(tokens, index + 1))],
    }
    attrs: dict[str, int] = {}
    colspan = _positive_int(token.attrGet("colspan"), limit=MAX_COLSPAN)
    rowspan = _positive_int(token.attrGet("rowspan"), limit=MAX_ROWSPAN)
    if colspan is not None:
        attrs["colspan"] = colspan
    if rowspan is not None:
        attrs["rowspan"] = rowspan
    if attrs:
        cell["attrs"] = attrs
    return cell, _skip_past(tokens, index + 1, "th_close" if is_header else "td_close")


def parse_inline(token: Token) -> list[TreeNode]:
    """Flatten an inline token's children into marked text runs.

    Nested emphasis/strong/strike/link spans do not produce wrapper nodes:
    each text run carries the set of marks active at that point.
    """
    out: list[TreeNode] = []
    # ``None`` stands for a link whose address was rejected.
    active: list[Mark | None] = []

    for child in token.children or []:
        kind = child.type
        if kind == "text":
            _append_inline(out, text_node(child.content, _live_marks(active)))
        elif kind == "code_inline":
            _append_inline(out, text_node(child.content, _live_marks(active) + [{"type": "code"}]))
        elif kind in _MARK_OPEN:
            active.append({"type": _MARK_OPEN[kind]})
        elif kind in _MARK_CLOSE:
            _close_mark(active, _MARK_CLOSE[kind])
        elif kind == "link_open":
            href = sanitize_link_url(child.attrGet("href") or "")
            if not href:
                active.append(None)
                continue
            attrs: dict[str, str] = {"href": href}
            title = child.attrGet("title")
            if title:
                attrs["title"] = str(title)
            active.append({"type": "link", "attrs": attrs})
        elif kind == "link_close":
            _close_mark(active, "link")
        elif kind in ("softbreak", "hardbreak"):
            out.append({"type": "hardBreak"})
        elif kind == "image":
            image = _image_node(child)
            if image is not None:
                out.append(image)
    return out


def _live_marks(active: list[Mark | None]) -> list[Mark]:
    return canonical_marks([mark for mark in active if mark is not None])


def _close_mark(active: list[Mark | None], mark_type: str) -> None:
    for pos in range(len(active) - 1, -1, -1):
        entry = active[pos]
        entry_type = "link" if entry is None else entry.get("type")
        if entry_type == mark_type:
            del active[pos]
            return


def _append_inline(out: list[TreeNode], node: TreeNode | None) -> None:
    if node is None:
        return
    if out:
        last = out[-1]
        if last.get("type") == "text" and last.get("marks", []) == node.get("marks", []):
            last["text"] = str(last.get("text") or "") + str(node.get("text") or "")
            return
    out.append(node)


def _image_node(token: Token) -> TreeNode | None:
    src = sanitize_image_url(token.attrGet("src") or "")
    if not src:
        return None
    attrs: dict[str, str] = {"src": src, "alt": token.content or ""}
    title = token.attrGet("title")
    if title:
        attrs["title"] = str(title)
    return {"type": "image", "attrs": attrs}
