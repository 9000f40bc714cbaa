"""Editing session state: focus, selection, cursor continuity, drafts and batches."""

from blocksmith.session.drafts import DraftBuffer
from blocksmith.session.selection import EditorSession

__all__ = ["DraftBuffer", "EditorSession"]
