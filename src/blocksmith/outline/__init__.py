"""Block outline engine - the tree model and its structural mutations.

This package holds everything that touches tree shape:

- Block entity model and BlockType variants
- Arena-backed BlockTree with the flatten/rebuild transform
- Closed set of mutation actions and the pure apply() engine
- Eligibility predicates (can_indent, can_outdent, ...)
- Logseq-style markdown codec

Example:
    >>> from blocksmith.outline import OutlineDocument, IndentBlock, apply
    >>> doc = OutlineDocument.parse("- A\\n- B")
    >>> a, b = doc.tree.roots
    >>> tree = apply(doc.tree, IndentBlock(block_id=b))
    >>> tree.blocks[b].parent_id == a
    True
"""

from blocksmith.outline.actions import (
    AddBlock,
    BlockAction,
    ChangeBlockType,
    DeleteBlock,
    IndentBlock,
    MergeWithPrevious,
    MoveDown,
    MoveUp,
    OutdentBlock,
    SplitAtOffset,
    ToggleCollapse,
    UpdateContent,
)
from blocksmith.outline.block import MAX_LEVEL, MIN_LEVEL, Block, BlockType, create_block
from blocksmith.outline.engine import (
    apply,
    can_collapse,
    can_indent,
    can_merge_with_previous,
    can_move_down,
    can_move_up,
    can_outdent,
    can_split,
)
from blocksmith.outline.markdown import OutlineDocument
from blocksmith.outline.tree import BlockTree, check_invariants, flatten, rebuild, visible_order

__all__ = [
    "AddBlock",
    "Block",
    "BlockAction",
    "BlockTree",
    "BlockType",
    "ChangeBlockType",
    "DeleteBlock",
    "IndentBlock",
    "MAX_LEVEL",
    "MIN_LEVEL",
    "MergeWithPrevious",
    "MoveDown",
    "MoveUp",
    "OutdentBlock",
    "OutlineDocument",
    "SplitAtOffset",
    "ToggleCollapse",
    "UpdateContent",
    "apply",
    "can_collapse",
    "can_indent",
    "can_merge_with_previous",
    "can_move_down",
    "can_move_up",
    "can_outdent",
    "can_split",
    "check_invariants",
    "create_block",
    "flatten",
    "rebuild",
    "visible_order",
]
