"""Source/Rendered view coordinator for one open document."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from PySide6.QtCore import QObject, Signal

from mdsync.rendering_surface import RenderingSurface
from mdsync.services.markdown_tree import parse_to_tree
from mdsync.services.tree_markup import normalize_markup, tree_to_markup

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    SOURCE = "source"
    RENDERED = "rendered"

    @classmethod
    def from_name(cls, value: object, default: "ViewMode | None" = None) -> "ViewMode":
        text = str(getattr(value, "value", value) or "").strip().lower()
        for mode in cls:
            if mode.value == text:
                return mode
        return default if default is not None else cls.RENDERED


@dataclass
class EditSession:
    view_mode: ViewMode = ViewMode.RENDERED
    raw_content: str = ""
    normalized_content: str = ""
    has_rendered_edits: bool = False
    pending_self_triggered_change: bool = False


class DocumentViewCoordinator(QObject):
    """Decides what each view shows and when converted text replaces raw text.

    Raw text is the canonical copy. The rendered view works on a derived tree;
    its normalized markup only replaces the raw text after a user edit made
    in the rendered view.
    """

    modeChanged = Signal(str)
    contentEdited = Signal(str)
    normalizationProduced = Signal(str)
    conversionWarning = Signal(str)

    def __init__(
        self,
        surface: RenderingSurface,
        *,
        initial_mode: ViewMode = ViewMode.RENDERED,
        normalize_source_on_blur: bool = False,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._surface = surface
        self._session = EditSession(view_mode=ViewMode.from_name(initial_mode))
        self.normalize_source_on_blur = bool(normalize_source_on_blur)

        changed = getattr(surface, "contentChanged", None)
        if changed is not None:
            changed.connect(self.user_edit_in_rendered)

    @property
    def session(self) -> EditSession:
        return self._session

    @property
    def mode(self) -> ViewMode:
        return self._session.view_mode

    @property
    def raw_content(self) -> str:
        return self._session.raw_content

    @property
    def normalized_content(self) -> str:
        return self._session.normalized_content

    @property
    def has_rendered_edits(self) -> bool:
        return self._session.has_rendered_edits

    def current_text(self) -> str:
        if self.mode is ViewMode.RENDERED and self._session.has_rendered_edits:
            return self._session.normalized_content
        return self._session.raw_content

    # ---------- Mode transitions ----------

    def set_mode(self, mode: ViewMode | str) -> None:
        target = ViewMode.from_name(mode, default=self.mode)
        if target is self.mode:
            return
        if target is ViewMode.RENDERED:
            self._session.view_mode = ViewMode.RENDERED
            # Entering the rendered view is never an edit.
            self._push_tree(self._session.raw_content)
        else:
            if self._session.has_rendered_edits:
                self._session.raw_content = self._session.normalized_content
                self._session.has_rendered_edits = False
            # Without edits the raw text is restored exactly as preserved.
            self._session.view_mode = ViewMode.SOURCE
        self.modeChanged.emit(target.value)

    def toggle_mode(self) -> ViewMode:
        self.set_mode(ViewMode.SOURCE if self.mode is ViewMode.RENDERED else ViewMode.RENDERED)
        return self.mode

    # ---------- Content events ----------

    def load_external_content(self, text: str) -> None:
        if self._session.pending_self_triggered_change:
            logger.debug("Ignoring content change produced by our own normalization")
            return
        text = str(text or "")
        previous = self._session
        self._session = EditSession(view_mode=previous.view_mode, raw_content=text)
        if self.mode is not ViewMode.RENDERED:
            return
        if text == previous.normalized_content and not previous.has_rendered_edits:
            # The surface already shows this exact text.
            self._session.normalized_content = previous.normalized_content
            return
        self._push_tree(text)

    def user_edit_in_rendered(self, serialized_output: str) -> str:
        if self.mode is not ViewMode.RENDERED:
            logger.debug("Rendered edit received while in source view; ignored")
            return self._session.raw_content
        self._session.has_rendered_edits = True
        normalized = tree_to_markup(serialized_output, on_warning=self.conversionWarning.emit)
        self._session.normalized_content = normalized
        self.contentEdited.emit(normalized)
        return normalized

    def user_edit_in_source(self, text: str) -> None:
        self._session.raw_content = str(text or "")
        self.contentEdited.emit(self._session.raw_content)

    def source_focus_lost(self) -> str:
        if self.mode is not ViewMode.SOURCE or not self.normalize_source_on_blur:
            return self._session.raw_content
        normalized = normalize_markup(self._session.raw_content, on_warning=self.conversionWarning.emit)
        if normalized != self._session.raw_content:
            self._session.raw_content = normalized
            self.contentEdited.emit(normalized)
        return self._session.raw_content

    # ---------- Internals ----------

    def _push_tree(self, text: str) -> None:
        self._surface.set_content(parse_to_tree(text))
        normalized = tree_to_markup(self._surface.get_html(), on_warning=self.conversionWarning.emit)
        self._session.normalized_content = normalized
        self._emit_self_triggered(normalized)

    def _emit_self_triggered(self, markup: str) -> None:
        # Listeners may route this back through load_external_content.
        self._session.pending_self_triggered_change = True
        try:
            self.normalizationProduced.emit(markup)
        finally:
            self._session.pending_self_triggered_change = False
