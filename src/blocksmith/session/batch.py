"""Batch operations over a set of blocks.

Targets are the multi-selection, or the focused block when nothing is
selected. Members are processed in document order so every per-block
precondition is checked against the partially mutated tree. Structural
batches skip members whose ancestor is also a member: the ancestor
already carries them along.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from blocksmith.outline.actions import (
    AddBlock,
    BlockAction,
    ChangeBlockType,
    DeleteBlock,
    IndentBlock,
    MoveDown,
    MoveUp,
    OutdentBlock,
    ToggleCollapse,
)
from blocksmith.outline.block import BlockType
from blocksmith.outline.engine import (
    apply,
    can_collapse,
    can_indent,
    can_move_down,
    can_move_up,
    can_outdent,
)
from blocksmith.outline.tree import BlockTree, ancestor_ids, descendant_ids
from blocksmith.session.selection import EditorSession
from blocksmith.utils.ids import generate_block_id
from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class BatchResult:
    """Outcome of a batch operation.

    Attributes:
        tree: Resulting tree (the input tree when nothing changed)
        applied_ids: Members whose action changed the tree
        created_ids: Ids of blocks created by the batch (duplicates)
    """

    tree: BlockTree
    applied_ids: list[str] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied_ids)


def resolve_targets(session: EditorSession) -> list[str]:
    """Selection if any, otherwise the focused block, otherwise nothing."""
    if session.has_selection():
        return list(session.selected_block_ids)
    if session.focused_block_id is not None:
        return [session.focused_block_id]
    return []


def order_targets(tree: BlockTree, block_ids: Iterable[str]) -> list[str]:
    """Existing ids, deduplicated and sorted by document position."""
    wanted = set(block_ids)
    return [block_id for block_id in tree.ids() if block_id in wanted]


def top_level_targets(tree: BlockTree, block_ids: Iterable[str]) -> list[str]:
    """Ordered members that have no ancestor among the members."""
    ordered = order_targets(tree, block_ids)
    members = set(ordered)
    return [
        block_id
        for block_id in ordered
        if not members.intersection(ancestor_ids(tree, block_id))
    ]


# Eligibility


def can_indent_blocks(tree: BlockTree, block_ids: Iterable[str]) -> bool:
    """True only if every member has somewhere to go."""
    block_ids = list(block_ids)
    if not block_ids or any(block_id not in tree for block_id in block_ids):
        return False
    return all(can_indent(tree, block_id) for block_id in top_level_targets(tree, block_ids))


def can_outdent_blocks(tree: BlockTree, block_ids: Iterable[str]) -> bool:
    """True if at least one member is below root level."""
    return any(can_outdent(tree, block_id) for block_id in block_ids)


def can_collapse_blocks(tree: BlockTree, block_ids: Iterable[str]) -> bool:
    return any(can_collapse(tree, block_id) for block_id in block_ids)


def collapsible_count(tree: BlockTree, block_ids: Iterable[str]) -> int:
    return sum(1 for block_id in block_ids if can_collapse(tree, block_id))


def can_move_blocks_up(tree: BlockTree, block_ids: Iterable[str]) -> bool:
    targets = top_level_targets(tree, block_ids)
    return bool(targets) and all(can_move_up(tree, block_id) for block_id in targets)


def can_move_blocks_down(tree: BlockTree, block_ids: Iterable[str]) -> bool:
    targets = top_level_targets(tree, block_ids)
    return bool(targets) and all(can_move_down(tree, block_id) for block_id in targets)


# Operations


def _apply_each(tree: BlockTree, block_ids: list[str], action_type: type) -> BatchResult:
    result = BatchResult(tree=tree)
    for block_id in block_ids:
        action: BlockAction = action_type(block_id=block_id)
        updated = apply(result.tree, action)
        if updated is not result.tree:
            result.applied_ids.append(block_id)
            result.tree = updated
    logger.debug(
        "batch_applied",
        action=action_type.__name__,
        requested=len(block_ids),
        applied=len(result.applied_ids),
    )
    return result


def indent_blocks(tree: BlockTree, block_ids: Iterable[str]) -> BatchResult:
    block_ids = list(block_ids)
    if not can_indent_blocks(tree, block_ids):
        logger.debug("batch_indent_ineligible", count=len(block_ids))
        return BatchResult(tree=tree)
    return _apply_each(tree, top_level_targets(tree, block_ids), IndentBlock)


def outdent_blocks(tree: BlockTree, block_ids: Iterable[str]) -> BatchResult:
    block_ids = list(block_ids)
    if not can_outdent_blocks(tree, block_ids):
        logger.debug("batch_outdent_ineligible", count=len(block_ids))
        return BatchResult(tree=tree)
    return _apply_each(tree, top_level_targets(tree, block_ids), OutdentBlock)


def move_blocks_up(tree: BlockTree, block_ids: Iterable[str]) -> BatchResult:
    block_ids = list(block_ids)
    if not can_move_blocks_up(tree, block_ids):
        return BatchResult(tree=tree)
    return _apply_each(tree, top_level_targets(tree, block_ids), MoveUp)


def move_blocks_down(tree: BlockTree, block_ids: Iterable[str]) -> BatchResult:
    """Move members down; the last member moves first so order is kept."""
    block_ids = list(block_ids)
    if not can_move_blocks_down(tree, block_ids):
        return BatchResult(tree=tree)
    return _apply_each(tree, list(reversed(top_level_targets(tree, block_ids))), MoveDown)


def toggle_collapse_blocks(tree: BlockTree, block_ids: Iterable[str]) -> BatchResult:
    targets = [block_id for block_id in order_targets(tree, block_ids) if can_collapse(tree, block_id)]
    return _apply_each(tree, targets, ToggleCollapse)


def delete_blocks(
    tree: BlockTree,
    block_ids: Iterable[str],
    session: Optional[EditorSession] = None,
) -> BatchResult:
    """Delete members with their subtrees, then clear selection and anchor."""
    result = _apply_each(tree, top_level_targets(tree, block_ids), DeleteBlock)
    if session is not None:
        session.clear_selection()
        session.prune(result.tree.ids())
    return result


def change_block_type(
    tree: BlockTree,
    block_ids: Iterable[str],
    block_type: BlockType,
    language: Optional[str] = None,
) -> BatchResult:
    result = BatchResult(tree=tree)
    for block_id in order_targets(tree, block_ids):
        updated = apply(result.tree, ChangeBlockType(block_id, block_type, language))
        if updated is not result.tree:
            result.applied_ids.append(block_id)
            result.tree = updated
    return result


def duplicate_blocks(tree: BlockTree, block_ids: Iterable[str], deep: bool = False) -> BatchResult:
    """Insert a copy of each member right after the member's subtree.

    Copies get fresh ids. A shallow duplicate copies only the member; a
    deep duplicate copies its whole subtree, keeping relative levels.
    """
    source = tree
    members = top_level_targets(source, block_ids) if deep else order_targets(source, block_ids)
    result = BatchResult(tree=tree)

    for block_id in members:
        original = source.blocks[block_id]
        copy_id = generate_block_id()
        updated = apply(
            result.tree,
            AddBlock(
                after_block_id=block_id,
                level=original.level,
                content=original.content,
                block_type=original.block_type,
                language=original.language,
                new_block_id=copy_id,
            ),
        )
        if updated is result.tree:
            continue
        result.tree = updated
        result.applied_ids.append(block_id)
        result.created_ids.append(copy_id)

        if not deep:
            continue

        last_id = copy_id
        for descendant_id in descendant_ids(source, block_id):
            descendant = source.blocks[descendant_id]
            descendant_copy_id = generate_block_id()
            result.tree = apply(
                result.tree,
                AddBlock(
                    after_block_id=last_id,
                    level=descendant.level,
                    content=descendant.content,
                    block_type=descendant.block_type,
                    language=descendant.language,
                    new_block_id=descendant_copy_id,
                ),
            )
            result.created_ids.append(descendant_copy_id)
            last_id = descendant_copy_id

    return result
