"""OutlineView widget for displaying the block tree.

Renders every visible block on its own line, indented by depth, with
markers for collapsed subtrees, block types, focus and selection.
"""

from rich.text import Text
from textual.widgets import Static

from blocksmith.outline.block import BlockType
from blocksmith.outline.tree import BlockTree, iter_preorder
from blocksmith.session.selection import EditorSession


def render_outline(tree: BlockTree, session: EditorSession) -> Text:
    """Build the rich Text shown by OutlineView.

    Args:
        tree: Tree to render
        session: Session providing focus and selection

    Returns:
        One line per visible block
    """
    text = Text()
    if not tree.roots:
        text.append("(empty outline, press o to add a block)", style="dim")
        return text

    for index, block_id in enumerate(iter_preorder(tree, include_collapsed=False)):
        block = tree.blocks[block_id]
        if index:
            text.append("\n")

        if block.children:
            bullet = "▸ " if block.collapsed else "▾ "
        else:
            bullet = "• "
        text.append("  " * block.level + bullet, style="dim")

        first_line = block.content.split("\n")[0] if block.content else ""
        if block.block_type == BlockType.CODE:
            text.append(f"```{block.language or ''} ", style="cyan")
        elif block.block_type == BlockType.FENCE:
            text.append("/// ", style="magenta")

        style = ""
        if session.is_selected(block_id):
            style = "on dark_green"
        if block_id == session.focused_block_id:
            style = f"{style} reverse".strip()
        text.append(first_line or " ", style=style)

        if block.collapsed and block.children:
            text.append(f" (+{len(block.children)})", style="yellow")

    return text


class OutlineView(Static):
    """Read-only outline display; keyboard commands are bound on the screen."""

    can_focus = True

    def __init__(self, *args, **kwargs):
        super().__init__("", *args, id="outline-view", **kwargs)

    def show(self, tree: BlockTree, session: EditorSession) -> None:
        """Re-render from the current tree and session."""
        self.update(render_outline(tree, session))

    def on_focus(self) -> None:
        self.styles.border = ("heavy", "blue")

    def on_blur(self) -> None:
        self.styles.border = ("solid", "white")
