"""Textual widget components."""

from blocksmith.tui.widgets.block_editor import BlockEditor
from blocksmith.tui.widgets.outline_view import OutlineView

__all__ = [
    "BlockEditor",
    "OutlineView",
]
