"""BlockEditor widget for editing the content of the focused block.

A TextArea that hands the keys with outline meaning back to the screen:
Enter, Backspace at the very start, and arrow keys that would leave the
block. Everything else is ordinary text editing.
"""

from typing import Optional

from textual import events
from textual.message import Message
from textual.widgets import TextArea

from blocksmith.session.cursor import location_to_offset, offset_to_location


class BlockEditor(TextArea):
    """Multi-line editor bound to one block at a time."""

    class EnterPressed(Message):
        """Enter was pressed at offset."""

        def __init__(self, block_id: str, offset: int) -> None:
            super().__init__()
            self.block_id = block_id
            self.offset = offset

    class BackspaceAtStart(Message):
        """Backspace was pressed with the caret at offset 0."""

        def __init__(self, block_id: str) -> None:
            super().__init__()
            self.block_id = block_id

    class Boundary(Message):
        """An arrow key tried to move the caret out of the block.

        Args:
            block_id: Block being edited
            direction: "up", "down", "left" or "right"
            offset: Caret offset when the key was pressed
        """

        def __init__(self, block_id: str, direction: str, offset: int) -> None:
            super().__init__()
            self.block_id = block_id
            self.direction = direction
            self.offset = offset

    def __init__(self, *args, **kwargs):
        super().__init__("", *args, id="block-editor", **kwargs)
        self.show_line_numbers = False
        self.block_id: Optional[str] = None

    def load_block(self, block_id: Optional[str], content: str, offset: Optional[int] = None) -> None:
        """Show a block's content and place the caret (end of content by default)."""
        self.block_id = block_id
        self.load_text(content)
        if offset is None:
            offset = len(content)
        self.cursor_location = offset_to_location(content, offset)

    def cursor_offset(self) -> int:
        row, column = self.cursor_location
        return location_to_offset(self.text, row, column)

    def on_key(self, event: events.Key) -> None:
        if self.block_id is None or not self.selection.is_empty:
            return

        row, column = self.cursor_location
        last_row = self.document.line_count - 1
        offset = self.cursor_offset()

        message: Optional[Message] = None
        if event.key == "enter":
            message = self.EnterPressed(self.block_id, offset)
        elif event.key == "backspace" and offset == 0:
            message = self.BackspaceAtStart(self.block_id)
        elif event.key == "up" and row == 0:
            message = self.Boundary(self.block_id, "up", offset)
        elif event.key == "down" and row == last_row:
            message = self.Boundary(self.block_id, "down", offset)
        elif event.key == "left" and offset == 0:
            message = self.Boundary(self.block_id, "left", offset)
        elif event.key == "right" and offset == len(self.text):
            message = self.Boundary(self.block_id, "right", offset)

        if message is not None:
            event.stop()
            event.prevent_default()
            self.post_message(message)

    def on_focus(self) -> None:
        self.styles.border = ("heavy", "blue")

    def on_blur(self) -> None:
        self.styles.border = ("solid", "white")
