"""Shared fixtures for UI tests."""

import pytest

from blocksmith.outline.markdown import OutlineDocument
from blocksmith.tui.app import OutlineApp


NOTES = """\
- Alpha
  id:: a
  - Child
    id:: a1
- Beta
  id:: b
- Gamma
  id:: g
"""


@pytest.fixture
def notes_path(tmp_path):
    """Markdown file with three root blocks, the first with one child.

        - Alpha
          - Child
        - Beta
        - Gamma
    """
    path = tmp_path / "notes.md"
    path.write_text(NOTES)
    return path


@pytest.fixture
def app(notes_path):
    return OutlineApp(OutlineDocument.parse(notes_path.read_text()), notes_path)


@pytest.fixture
def saved_tree(notes_path):
    """Parse what is currently on disk."""
    return lambda: OutlineDocument.parse(notes_path.read_text()).tree
