"""Rendering-surface HTML -> markup text.

Rule based: a ``markdownify`` converter with ATX headings, fenced code and a
table rule for the surface's "one paragraph per cell" shape. Inline formatting
inside table cells is flattened to plain text; merged cells cannot be written
as pipe tables and only produce a warning.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from bs4 import BeautifulSoup
from markdownify import ATX, MarkdownConverter

from mdsync.services.markdown_tree import parse_to_tree
from mdsync.services.tree_html import render_tree_html

logger = logging.getLogger(__name__)

WarningCallback = Callable[[str], None]

_WS_RE = re.compile(r"\s+")
_BACKTICK_RUN_RE = re.compile(r"`{3,}")

# Text at the start of a line that would otherwise open a block.
_LEADING_HASHES_RE = re.compile(r"^([ \t]*)(#{1,6})(?=\s|$)", re.M)
_LEADING_BULLET_RE = re.compile(r"^([ \t]*)([-+=]+)(?=\s|$)", re.M)
_LEADING_QUOTE_RE = re.compile(r"^([ \t]*)>", re.M)
_LEADING_ORDINAL_RE = re.compile(r"^([ \t]*\d{1,9})([.)])(?=\s|$)", re.M)
_LEADING_FENCE_RE = re.compile(r"^([ \t]*)(`{3,}|~{3,})", re.M)


class DocumentMarkdownConverter(MarkdownConverter):
    def __init__(self, *, on_warning: WarningCallback | None = None, **options) -> None:
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        super().__init__(**options)
        self._on_warning = on_warning

    def escape(self, text, parent_tags):
        text = super().escape(text, parent_tags)
        if not text or self.options["escape_misc"]:
            return text
        # Fragments may start mid-line; an extra backslash there is harmless.
        text = _LEADING_HASHES_RE.sub(r"\1\\\2", text)
        text = _LEADING_BULLET_RE.sub(r"\1\\\2", text)
        text = _LEADING_QUOTE_RE.sub(r"\1\\>", text)
        text = _LEADING_ORDINAL_RE.sub(r"\1\\\2", text)
        return _LEADING_FENCE_RE.sub(r"\1\\\2", text)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        if self._on_warning is not None:
            self._on_warning(message)

    def convert_pre(self, el, text, parent_tags):
        code = el.get_text()
        if code.endswith("\n"):
            code = code[:-1]
        if not code:
            return "\n\n```" + self._code_language(el) + "\n```\n\n"
        longest = max((len(run) for run in _BACKTICK_RUN_RE.findall(code)), default=2)
        fence = "`" * max(3, longest + 1)
        return f"\n\n{fence}{self._code_language(el)}\n{code}\n{fence}\n\n"

    @staticmethod
    def _code_language(el) -> str:
        code = el.find("code")
        if code is None:
            return ""
        for css_class in code.get("class") or []:
            if css_class.startswith("language-"):
                return css_class[len("language-"):]
        return ""

    def convert_table(self, el, text, parent_tags):
        first_cell = el.find(["td", "th"])
        if first_cell is None or first_cell.find("p") is None:
            return super().convert_table(el, text, parent_tags)

        rows: list[list[str]] = []
        for tr in el.find_all("tr"):
            cells = tr.find_all(["th", "td"], recursive=False)
            if not cells:
                continue
            rows.append([self._cell_text(cell) for cell in cells])
        if not rows:
            return ""

        width = max(len(row) for row in rows)
        lines: list[str] = []
        for index, row in enumerate(rows):
            padded = row + [""] * (width - len(row))
            lines.append("| " + " | ".join(padded) + " |")
            if index == 0:
                # Pipe tables always need a header separator after the first row.
                lines.append("| " + " | ".join(["---"] * width) + " |")
        return "\n\n" + "\n".join(lines) + "\n\n"

    def _cell_text(self, cell) -> str:
        for span in ("colspan", "rowspan"):
            value = str(cell.get(span) or "").strip()
            if value and value != "1":
                self._warn(
                    f"Table cell has {span}={value}; merged cells cannot be represented "
                    "in markdown tables and will be split."
                )
        paragraphs = cell.find_all("p")
        if paragraphs:
            raw = " ".join(p.get_text() for p in paragraphs)
        else:
            raw = cell.get_text()
        return _WS_RE.sub(" ", raw).strip().replace("|", "\\|")


def tree_to_markup(serialized_html: str, on_warning: WarningCallback | None = None) -> str:
    """Convert the surface's serialized HTML back into markup text."""
    soup = BeautifulSoup(str(serialized_html or ""), "html.parser")
    markup = DocumentMarkdownConverter(on_warning=on_warning).convert_soup(soup)
    return markup.strip()


def normalize_markup(markup: str, on_warning: WarningCallback | None = None) -> str:
    """Round-trip markup through the tree, as the rendered view would."""
    return tree_to_markup(render_tree_html(parse_to_tree(markup)), on_warning=on_warning)
