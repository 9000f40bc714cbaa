"""Block entity model for the outline tree.

Blocks never hold references to other blocks. Parent and children are
stored as ids and resolved through the owning BlockTree, so copying a
tree never aliases nodes between the old and the new version.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from blocksmith.utils.ids import generate_block_id
from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)

MIN_LEVEL = 0
MAX_LEVEL = 10

CODE_FENCE = "```"
FENCE_DELIMITER = "///"


class BlockType(str, Enum):
    """Block variant tag."""

    BULLET = "bullet"  # Enter splits the block
    CODE = "code"  # Enter inserts a newline, content is code
    FENCE = "fence"  # Enter inserts a newline, content is literal text


@dataclass
class Block:
    """Single node of the outline.

    Attributes:
        id: Stable unique identifier, never reused
        content: Raw text (multi-line for code/fence blocks)
        level: Nesting depth (0 = root)
        block_type: Variant tag deciding how Enter behaves
        language: Code language for code blocks
        parent_id: Id of the parent block (None for roots)
        children: Ordered child ids
        collapsed: Whether children are hidden from the visible sequence
    """

    id: str
    content: str = ""
    level: int = 0
    block_type: BlockType = BlockType.BULLET
    language: Optional[str] = None
    parent_id: Optional[str] = None
    children: list[str] = field(default_factory=list)
    collapsed: bool = False

    def copy(self) -> "Block":
        """Return an independent copy (children list is not shared)."""
        return replace(self, children=list(self.children))

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def lines(self) -> list[str]:
        return self.content.split("\n")


def clamp_level(level: int) -> int:
    """Clamp a requested level into [MIN_LEVEL, MAX_LEVEL]."""
    return max(MIN_LEVEL, min(MAX_LEVEL, level))


def create_block(
    content: str = "",
    level: int = 0,
    block_type: BlockType = BlockType.BULLET,
    language: Optional[str] = None,
    block_id: Optional[str] = None,
) -> Block:
    """Create a fresh, unattached block with a validated level.

    Args:
        content: Initial content
        level: Requested level (clamped to the legal range)
        block_type: Variant tag
        language: Code language (code blocks only)
        block_id: Explicit id (a new UUID is generated when omitted)

    Returns:
        New Block with no parent and no children
    """
    clamped = clamp_level(level)
    if clamped != level:
        logger.warning("block_level_clamped", requested=level, clamped=clamped)

    return Block(
        id=block_id or generate_block_id(),
        content=content,
        level=clamped,
        block_type=block_type,
        language=language,
    )
