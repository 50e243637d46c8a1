"""Serialize a document tree to the HTML a rich-text surface emits."""

from __future__ import annotations

from html import escape

from mdsync.services.document_tree import TreeNode, canonical_marks

_BLOCK_TAGS = {
    "paragraph": "p",
    "bulletList": "ul",
    "orderedList": "ol",
    "listItem": "li",
    "blockquote": "blockquote",
    "table": "table",
    "tableRow": "tr",
    "tableHeader": "th",
    "tableCell": "td",
}


def _attr(name: str, value: object) -> str:
    return f' {name}="{escape(str(value), quote=True)}"'


def render_tree_html(tree: TreeNode) -> str:
    if tree.get("type") == "doc":
        return "".join(_render_node(child) for child in tree.get("content", []) or [])
    return _render_node(tree)


def _render_children(node: TreeNode) -> str:
    return "".join(_render_node(child) for child in node.get("content", []) or [])


def _render_node(node: TreeNode) -> str:
    kind = node.get("type")
    attrs = node.get("attrs") or {}

    if kind == "text":
        return _render_text(node)
    if kind == "hardBreak":
        return "<br>"
    if kind == "horizontalRule":
        return "<hr>"
    if kind == "image":
        out = "<img" + _attr("src", attrs.get("src", "")) + _attr("alt", attrs.get("alt", ""))
        if attrs.get("title"):
            out += _attr("title", attrs["title"])
        return out + ">"
    if kind == "heading":
        level = int(attrs.get("level") or 1)
        return f"<h{level}>{_render_children(node)}</h{level}>"
    if kind == "codeBlock":
        language = attrs.get("language")
        code_attr = _attr("class", f"language-{language}") if language else ""
        code = "".join(str(child.get("text") or "") for child in node.get("content", []) or [])
        return f"<pre><code{code_attr}>{escape(code, quote=False)}</code></pre>"
    if kind == "table":
        # The surface always nests rows in a tbody.
        return f"<table><tbody>{_render_children(node)}</tbody></table>"
    if kind in ("tableHeader", "tableCell"):
        tag = _BLOCK_TAGS[kind]
        span_attrs = "".join(
            _attr(name, attrs[name]) for name in ("colspan", "rowspan") if attrs.get(name) not in (None, 1)
        )
        return f"<{tag}{span_attrs}>{_render_children(node)}</{tag}>"
    if kind == "orderedList" and attrs.get("start") not in (None, 1):
        return f"<ol{_attr('start', attrs['start'])}>{_render_children(node)}</ol>"

    tag = _BLOCK_TAGS.get(str(kind))
    if tag is None:
        return _render_children(node)
    return f"<{tag}>{_render_children(node)}</{tag}>"


def _render_text(node: TreeNode) -> str:
    html = escape(str(node.get("text") or ""), quote=False)
    # Innermost mark wraps first so the fixed order reads outermost-first.
    for mark in reversed(canonical_marks(node.get("marks"))):
        mark_type = mark.get("type")
        if mark_type == "bold":
            html = f"<strong>{html}</strong>"
        elif mark_type == "italic":
            html = f"<em>{html}</em>"
        elif mark_type == "strike":
            html = f"<s>{html}</s>"
        elif mark_type == "code":
            html = f"<code>{html}</code>"
        elif mark_type == "link":
            attrs = mark.get("attrs") or {}
            link_attrs = _attr("href", attrs.get("href", ""))
            if attrs.get("title"):
                link_attrs += _attr("title", attrs["title"])
            html = f"<a{link_attrs}>{html}</a>"
    return html
