"""Caret placement when navigation crosses block boundaries.

Each block is edited as its own text buffer. To make arrow keys feel like
one continuous document, moving up from the first line (or down from the
last line) of a block focuses the neighbouring visible block and keeps the
caret's column, clamped to the length of the line it lands on.
"""

from typing import Literal, Optional

from blocksmith.outline.tree import BlockTree
from blocksmith.session.selection import EditorSession
from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)

VerticalDirection = Literal["up", "down"]
HorizontalDirection = Literal["left", "right"]


def clamp_offset(content: str, offset: int) -> int:
    return max(0, min(offset, len(content)))


def line_start(content: str, offset: int) -> int:
    """Offset of the first character of the line containing offset."""
    offset = clamp_offset(content, offset)
    return content.rfind("\n", 0, offset) + 1


def column_at(content: str, offset: int) -> int:
    """Column of offset within its line."""
    offset = clamp_offset(content, offset)
    return offset - line_start(content, offset)


def is_on_first_line(content: str, offset: int) -> bool:
    return "\n" not in content[: clamp_offset(content, offset)]


def is_on_last_line(content: str, offset: int) -> bool:
    return "\n" not in content[clamp_offset(content, offset):]


def offset_to_location(content: str, offset: int) -> tuple[int, int]:
    """Convert a flat offset into a (row, column) pair."""
    offset = clamp_offset(content, offset)
    row = content.count("\n", 0, offset)
    return row, column_at(content, offset)


def location_to_offset(content: str, row: int, column: int) -> int:
    """Convert (row, column) into a flat offset, clamping both coordinates."""
    lines = content.split("\n")
    row = max(0, min(row, len(lines) - 1))
    column = max(0, min(column, len(lines[row])))
    return sum(len(line) + 1 for line in lines[:row]) + column


def previous_block_cursor_position(column: int, content: str) -> int:
    """Caret offset on the last line of content at the given column.

    Example:
        >>> previous_block_cursor_position(3, "foo\\nbar")
        7
    """
    last_start = content.rfind("\n") + 1
    last_line = content[last_start:]
    return last_start + max(0, min(column, len(last_line)))


def next_block_cursor_position(column: int, content: str) -> int:
    """Caret offset on the first line of content at the given column."""
    first_line = content.split("\n", 1)[0]
    return max(0, min(column, len(first_line)))


def vertical_target(
    tree: BlockTree,
    visible_order: list[str],
    block_id: str,
    cursor_pos: int,
    direction: VerticalDirection,
) -> Optional[tuple[str, int]]:
    """Work out where an up/down key press should land.

    Args:
        tree: Current tree (for block contents)
        visible_order: Visible block ids in document order
        block_id: Block holding the caret
        cursor_pos: Caret offset within that block's content
        direction: "up" or "down"

    Returns:
        (destination_id, caret_offset), or None when the caret is not on a
        boundary line or there is no neighbour in that direction
    """
    block = tree.get(block_id)
    if block is None or block_id not in visible_order:
        return None

    content = block.content
    if direction == "up" and not is_on_first_line(content, cursor_pos):
        return None
    if direction == "down" and not is_on_last_line(content, cursor_pos):
        return None

    position = visible_order.index(block_id)
    neighbour = position - 1 if direction == "up" else position + 1
    if neighbour < 0 or neighbour >= len(visible_order):
        return None

    destination_id = visible_order[neighbour]
    destination = tree.blocks[destination_id].content
    column = column_at(content, cursor_pos)

    if direction == "up":
        offset = previous_block_cursor_position(column, destination)
    else:
        offset = next_block_cursor_position(column, destination)

    return destination_id, clamp_offset(destination, offset)


def navigate_vertical(
    session: EditorSession,
    tree: BlockTree,
    visible_order: list[str],
    block_id: str,
    cursor_pos: int,
    direction: VerticalDirection,
) -> Optional[str]:
    """Move focus across a block boundary, keeping the caret column.

    Returns:
        Newly focused block id, or None if the key press stays in the block
    """
    target = vertical_target(tree, visible_order, block_id, cursor_pos, direction)
    if target is None:
        return None

    destination_id, offset = target
    session.set_focus(destination_id, offset)
    logger.debug(
        "cursor_crossed_block",
        source=block_id,
        destination=destination_id,
        direction=direction,
        offset=offset,
    )
    return destination_id


def navigate_horizontal(
    session: EditorSession,
    tree: BlockTree,
    visible_order: list[str],
    block_id: str,
    cursor_pos: int,
    direction: HorizontalDirection,
) -> Optional[str]:
    """Left at offset 0 goes to the end of the previous block, right at the
    end goes to the start of the next one.

    Returns:
        Newly focused block id, or None if the caret stays in the block
    """
    block = tree.get(block_id)
    if block is None or block_id not in visible_order:
        return None

    position = visible_order.index(block_id)
    if direction == "left":
        if cursor_pos > 0 or position == 0:
            return None
        destination_id = visible_order[position - 1]
        offset = len(tree.blocks[destination_id].content)
    else:
        if cursor_pos < len(block.content) or position + 1 >= len(visible_order):
            return None
        destination_id = visible_order[position + 1]
        offset = 0

    session.set_focus(destination_id, offset)
    return destination_id
