"""Hover preview popup for linked pages and maps."""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QPoint, Qt
from PyQt6.QtWidgets import QFrame, QLabel, QVBoxLayout, QWidget

from ..core.hit_test import Preview
from ..core.image_probe import LivenessToken
from ..core.models import TargetKind
from ..core.vault_index import PageIO
from ..workers.async_bridge import AsyncBridge

logger = logging.getLogger(__name__)

# Characters of page content shown in a preview
PREVIEW_LENGTH = 400


def preview_excerpt(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Trim page text to a short excerpt, skipping front matter."""
    if text.startswith("---"):
        end = text.find("\n---", 3)
        if end != -1:
            text = text[end + 4:]
    text = text.strip()
    if len(text) > limit:
        text = text[:limit].rstrip() + "..."
    return text


class PreviewPopup(QFrame):
    """
    Floating popup showing the start of a linked document.

    Page content is read asynchronously; a result that arrives after the
    pointer moved on to another object is discarded.
    """

    def __init__(self, bridge: AsyncBridge, page_io: PageIO, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent, Qt.WindowType.ToolTip)
        self.bridge = bridge
        self.page_io = page_io
        self._token: Optional[LivenessToken] = None
        self._preview: Optional[Preview] = None

        self.setFrameShape(QFrame.Shape.StyledPanel)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 6, 8, 6)

        self.title_label = QLabel()
        font = self.title_label.font()
        font.setBold(True)
        self.title_label.setFont(font)
        layout.addWidget(self.title_label)

        self.body_label = QLabel()
        self.body_label.setWordWrap(True)
        self.body_label.setMaximumWidth(320)
        self.body_label.setTextFormat(Qt.TextFormat.PlainText)
        layout.addWidget(self.body_label)

    @property
    def preview(self) -> Optional[Preview]:
        return self._preview

    def show_preview(self, preview: Optional[Preview], anchor: QPoint) -> None:
        """Show a preview next to ``anchor``, or hide the popup for None."""
        if self._token is not None:
            self._token.cancel()
            self._token = None

        self._preview = preview
        if preview is None:
            self.hide()
            return

        self.title_label.setText(preview.target.title)
        if preview.target.kind == TargetKind.MAP:
            self.body_label.setText("Map")
            self._show_at(anchor)
            return

        self.body_label.setText("Loading...")
        self._show_at(anchor)

        token = LivenessToken()
        self._token = token
        self.bridge.submit(
            self.page_io.read_text(preview.path),
            on_result=lambda text: self._on_loaded(token, text),
            on_error=lambda error: self._on_failed(token, preview, error),
        )

    def _show_at(self, anchor: QPoint) -> None:
        self.adjustSize()
        self.move(anchor + QPoint(16, 16))
        self.show()

    def _on_loaded(self, token: LivenessToken, text: str) -> None:
        if not token.alive:
            return
        self.body_label.setText(preview_excerpt(text))
        self.adjustSize()

    def _on_failed(self, token: LivenessToken, preview: Preview, error: BaseException) -> None:
        logger.warning(f"Could not read preview for {preview.path}: {error}")
        if token.alive:
            self.body_label.setText("Preview unavailable")
            self.adjustSize()
