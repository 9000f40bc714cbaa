"""Tests for rendering the outline."""

from blocksmith.outline.block import BlockType
from blocksmith.session.selection import EditorSession
from blocksmith.outline.tree import BlockTree
from blocksmith.tui.widgets.outline_view import render_outline


def test_empty_outline_hint():
    """Test the placeholder for an empty document."""
    text = render_outline(BlockTree(), EditorSession())

    assert "press o to add a block" in text.plain


def test_lines_and_markers(sample_tree):
    """Test indentation, bullets and the collapsed child count."""
    sample_tree.blocks["a1"].collapsed = True
    sample_tree.blocks["b"].block_type = BlockType.CODE
    sample_tree.blocks["b"].language = "sh"

    lines = render_outline(sample_tree, EditorSession()).plain.split("\n")

    assert lines == ["▾ A", "  ▸ A1 (+1)", "  • A2", "• ```sh B", "• C"]


def test_focus_and_selection_styles(sample_tree):
    """Test that focused and selected blocks are highlighted."""
    session = EditorSession()
    session.set_focus("b")
    session.toggle_selection("c")

    text = render_outline(sample_tree, session)
    styles = {text.plain[span.start:span.end]: str(span.style) for span in text.spans}

    assert styles["B"] == "reverse"
    assert styles["C"] == "on dark_green"
