"""Textual screen components."""

from blocksmith.tui.screens.outline_editor import OutlineEditorScreen

__all__ = [
    "OutlineEditorScreen",
]
