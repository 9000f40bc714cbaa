"""Structural mutation engine.

apply() takes a tree and a BlockAction and returns a new tree. It never
mutates its input and never raises for a stale or ineligible request:
when the target block is missing or a precondition fails, the very same
tree object is returned, so callers can detect no-ops with `is`.

Every successful mutation works on a flattened copy of the tree and ends
with rebuild(), which restores parent/children links in one pass.
"""

from dataclasses import asdict

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
from blocksmith.outline.block import MAX_LEVEL, MIN_LEVEL, BlockType, create_block
from blocksmith.outline.tree import (
    BlockTree,
    deepest_level,
    descendant_ids,
    flatten,
    get_previous_block,
    index_of,
    next_sibling_id,
    previous_sibling_id,
    rebuild,
    subtree_end,
)
from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)


# Eligibility predicates


def can_indent(tree: BlockTree, block_id: str) -> bool:
    """True if the block has a previous sibling to become the child of.

    The whole subtree moves one level deeper, so its deepest block must
    stay within MAX_LEVEL.
    """
    if block_id not in tree:
        return False
    return previous_sibling_id(tree, block_id) is not None and deepest_level(tree, block_id) < MAX_LEVEL


def can_outdent(tree: BlockTree, block_id: str) -> bool:
    block = tree.get(block_id)
    return block is not None and block.level > MIN_LEVEL


def can_move_up(tree: BlockTree, block_id: str) -> bool:
    return block_id in tree and previous_sibling_id(tree, block_id) is not None


def can_move_down(tree: BlockTree, block_id: str) -> bool:
    return block_id in tree and next_sibling_id(tree, block_id) is not None


def can_collapse(tree: BlockTree, block_id: str) -> bool:
    block = tree.get(block_id)
    return block is not None and block.has_children


def can_merge_with_previous(tree: BlockTree, block_id: str) -> bool:
    return block_id in tree and get_previous_block(tree, block_id) is not None


def can_split(tree: BlockTree, block_id: str) -> bool:
    """Only bullet blocks split; code and fence blocks take a newline instead."""
    block = tree.get(block_id)
    return block is not None and block.block_type == BlockType.BULLET


# Dispatch


def apply(tree: BlockTree, action: BlockAction) -> BlockTree:
    """Apply one structural mutation.

    Args:
        tree: Current tree (left untouched)
        action: Mutation request

    Returns:
        New tree, or `tree` itself when the action was a no-op
    """
    logger.debug("block_action", action=type(action).__name__, **asdict(action))

    if isinstance(action, AddBlock):
        return _add_block(tree, action)
    elif isinstance(action, DeleteBlock):
        return _delete_block(tree, action)
    elif isinstance(action, UpdateContent):
        return _update_content(tree, action)
    elif isinstance(action, ChangeBlockType):
        return _change_block_type(tree, action)
    elif isinstance(action, IndentBlock):
        return _indent_block(tree, action)
    elif isinstance(action, OutdentBlock):
        return _outdent_block(tree, action)
    elif isinstance(action, MoveUp):
        return _move_up(tree, action)
    elif isinstance(action, MoveDown):
        return _move_down(tree, action)
    elif isinstance(action, ToggleCollapse):
        return _toggle_collapse(tree, action)
    elif isinstance(action, MergeWithPrevious):
        return _merge_with_previous(tree, action)
    elif isinstance(action, SplitAtOffset):
        return _split_at_offset(tree, action)

    logger.error("block_action_unknown", action=type(action).__name__)
    return tree


def _noop(reason: str, tree: BlockTree, **context) -> BlockTree:
    logger.debug(reason, **context)
    return tree


# Handlers


def _add_block(tree: BlockTree, action: AddBlock) -> BlockTree:
    if action.new_block_id is not None and action.new_block_id in tree:
        return _noop("add_block_id_in_use", tree, block_id=action.new_block_id)

    flat = flatten(tree)

    if action.after_block_id is None:
        level = action.level if action.level is not None else MIN_LEVEL
        new_block = create_block(
            action.content, level, action.block_type, action.language, action.new_block_id
        )
        flat.append(new_block)
        return rebuild(flat)

    index = index_of(flat, action.after_block_id)
    if index == -1:
        return _noop("add_block_anchor_not_found", tree, after_block_id=action.after_block_id)

    reference = flat[index]
    level = action.level if action.level is not None else reference.level
    new_block = create_block(
        action.content, level, action.block_type, action.language, action.new_block_id
    )

    # Deeper than the reference: first child. Otherwise: after its subtree.
    if new_block.level > reference.level:
        insert_at = index + 1
    else:
        insert_at = subtree_end(flat, index)

    flat.insert(insert_at, new_block)
    return rebuild(flat)


def _delete_block(tree: BlockTree, action: DeleteBlock) -> BlockTree:
    if action.block_id not in tree:
        return _noop("delete_block_not_found", tree, block_id=action.block_id)

    to_remove = {action.block_id, *descendant_ids(tree, action.block_id)}
    flat = [block for block in flatten(tree) if block.id not in to_remove]

    logger.debug("delete_block_cascade", block_id=action.block_id, removed=len(to_remove))
    return rebuild(flat)


def _update_content(tree: BlockTree, action: UpdateContent) -> BlockTree:
    block = tree.get(action.block_id)
    if block is None:
        return _noop("update_content_not_found", tree, block_id=action.block_id)
    if block.content == action.content:
        return tree

    flat = flatten(tree)
    flat[index_of(flat, action.block_id)].content = action.content
    return rebuild(flat)


def _change_block_type(tree: BlockTree, action: ChangeBlockType) -> BlockTree:
    block = tree.get(action.block_id)
    if block is None:
        return _noop("change_type_not_found", tree, block_id=action.block_id)

    language = action.language if action.block_type == BlockType.CODE else None
    if block.block_type == action.block_type and block.language == language:
        return tree

    flat = flatten(tree)
    target = flat[index_of(flat, action.block_id)]
    target.block_type = action.block_type
    target.language = language
    return rebuild(flat)


def _shift_subtree(tree: BlockTree, block_id: str, delta: int) -> BlockTree:
    flat = flatten(tree)
    start = index_of(flat, block_id)
    end = subtree_end(flat, start)
    for block in flat[start:end]:
        block.level = max(MIN_LEVEL, block.level + delta)
    return rebuild(flat)


def _indent_block(tree: BlockTree, action: IndentBlock) -> BlockTree:
    if not can_indent(tree, action.block_id):
        return _noop("indent_ineligible", tree, block_id=action.block_id)
    # Level becomes previous sibling's level + 1, i.e. its own level + 1
    return _shift_subtree(tree, action.block_id, 1)


def _outdent_block(tree: BlockTree, action: OutdentBlock) -> BlockTree:
    if not can_outdent(tree, action.block_id):
        return _noop("outdent_ineligible", tree, block_id=action.block_id)
    return _shift_subtree(tree, action.block_id, -1)


def _move_up(tree: BlockTree, action: MoveUp) -> BlockTree:
    sibling_id = previous_sibling_id(tree, action.block_id)
    if sibling_id is None:
        return _noop("move_up_no_sibling", tree, block_id=action.block_id)

    flat = flatten(tree)
    start = index_of(flat, action.block_id)
    end = subtree_end(flat, start)
    sibling_start = index_of(flat, sibling_id)

    if flat[sibling_start].level != flat[start].level:
        return _noop("move_up_level_mismatch", tree, block_id=action.block_id)

    reordered = flat[:sibling_start] + flat[start:end] + flat[sibling_start:start] + flat[end:]
    return rebuild(reordered)


def _move_down(tree: BlockTree, action: MoveDown) -> BlockTree:
    sibling_id = next_sibling_id(tree, action.block_id)
    if sibling_id is None:
        return _noop("move_down_no_sibling", tree, block_id=action.block_id)

    flat = flatten(tree)
    start = index_of(flat, action.block_id)
    end = subtree_end(flat, start)
    sibling_start = index_of(flat, sibling_id)
    sibling_end = subtree_end(flat, sibling_start)

    if flat[sibling_start].level != flat[start].level:
        return _noop("move_down_level_mismatch", tree, block_id=action.block_id)

    reordered = flat[:start] + flat[sibling_start:sibling_end] + flat[start:end] + flat[sibling_end:]
    return rebuild(reordered)


def _toggle_collapse(tree: BlockTree, action: ToggleCollapse) -> BlockTree:
    if not can_collapse(tree, action.block_id):
        return _noop("toggle_collapse_ineligible", tree, block_id=action.block_id)

    flat = flatten(tree)
    target = flat[index_of(flat, action.block_id)]
    target.collapsed = not target.collapsed
    return rebuild(flat)


def _merge_with_previous(tree: BlockTree, action: MergeWithPrevious) -> BlockTree:
    if action.block_id not in tree:
        return _noop("merge_not_found", tree, block_id=action.block_id)

    flat = flatten(tree)
    index = index_of(flat, action.block_id)
    if index <= 0:
        return _noop("merge_no_previous", tree, block_id=action.block_id)

    previous = flat[index - 1]
    current = flat[index]
    end = subtree_end(flat, index)

    previous.content = previous.content + current.content

    # Children (with their subtrees) now sit directly after previous
    delta = previous.level - current.level
    for block in flat[index + 1:end]:
        block.level += delta

    del flat[index]
    return rebuild(flat)


def _split_at_offset(tree: BlockTree, action: SplitAtOffset) -> BlockTree:
    if not can_split(tree, action.block_id):
        return _noop("split_ineligible", tree, block_id=action.block_id)
    if action.new_block_id is not None and action.new_block_id in tree:
        return _noop("split_block_id_in_use", tree, block_id=action.new_block_id)

    flat = flatten(tree)
    index = index_of(flat, action.block_id)
    block = flat[index]

    offset = max(0, min(action.offset, len(block.content)))
    head, tail = block.content[:offset], block.content[offset:]

    block.content = head
    new_block = create_block(tail, block.level, block_id=action.new_block_id)

    # The original keeps its children, so the new sibling goes after them
    flat.insert(subtree_end(flat, index), new_block)
    return rebuild(flat)
