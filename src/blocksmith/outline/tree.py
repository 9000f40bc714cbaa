"""Arena-backed block tree and the flatten/rebuild transform.

The tree is a dict of blocks keyed by id plus an ordered list of root ids.
Mutations never edit a tree in place: they flatten it into a list of block
copies (pre-order, depth-first), edit levels/positions in that list, and
rebuild a new tree from it. rebuild() is the only place where parent and
children links are computed, so it is also the only place where tree
invariants get repaired.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from blocksmith.outline.block import MIN_LEVEL, Block
from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class BlockTree:
    """Outline document as an arena of blocks.

    Attributes:
        blocks: All blocks keyed by id
        roots: Root block ids in document order
    """

    blocks: dict[str, Block] = field(default_factory=dict)
    roots: list[str] = field(default_factory=list)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self.blocks

    def __len__(self) -> int:
        return len(self.blocks)

    def get(self, block_id: Optional[str]) -> Optional[Block]:
        """Look up a block by id (None when absent)."""
        if block_id is None:
            return None
        return self.blocks.get(block_id)

    def children_of(self, block_id: Optional[str]) -> list[Block]:
        """Child blocks of block_id in order (roots when block_id is None)."""
        if block_id is None:
            return [self.blocks[i] for i in self.roots]
        block = self.blocks.get(block_id)
        if block is None:
            return []
        return [self.blocks[i] for i in block.children]

    def siblings_of(self, block_id: str) -> list[str]:
        """Ids of the sibling list containing block_id (including itself)."""
        block = self.blocks.get(block_id)
        if block is None:
            return []
        if block.parent_id is None:
            return self.roots
        return self.blocks[block.parent_id].children

    def ids(self) -> list[str]:
        """All block ids in document (pre-order) order."""
        return list(iter_preorder(self))

    @classmethod
    def from_blocks(cls, blocks: Iterable[Block]) -> "BlockTree":
        """Build a tree from blocks listed in document order with levels."""
        return rebuild(blocks)


def iter_preorder(tree: BlockTree, include_collapsed: bool = True) -> Iterator[str]:
    """Yield block ids in pre-order, depth-first.

    Args:
        tree: Tree to walk
        include_collapsed: If False, children of collapsed blocks are skipped

    Yields:
        Block ids in document order
    """
    stack = list(reversed(tree.roots))
    while stack:
        block_id = stack.pop()
        yield block_id
        block = tree.blocks[block_id]
        if block.collapsed and not include_collapsed:
            continue
        stack.extend(reversed(block.children))


def flatten(tree: BlockTree) -> list[Block]:
    """Flatten a tree into an ordered list of block copies.

    Each copy carries its resolved depth as level. Editing the returned
    list never touches the source tree.

    Args:
        tree: Tree to flatten

    Returns:
        Block copies in pre-order
    """
    result: list[Block] = []
    stack = [(block_id, 0) for block_id in reversed(tree.roots)]
    while stack:
        block_id, depth = stack.pop()
        block = tree.blocks[block_id].copy()
        block.level = depth
        result.append(block)
        stack.extend((child_id, depth + 1) for child_id in reversed(block.children))
    return result


def rebuild(flat: Iterable[Block]) -> BlockTree:
    """Rebuild a tree from blocks listed in document order.

    Scans left to right keeping a stack of the current ancestor chain.
    A block at level d becomes the last child of the most recent block at
    level d-1, or a root when d == 0. A level more than one deeper than its
    predecessor is clamped to predecessor + 1; negative levels become 0.

    The given blocks are owned by the new tree afterwards: their parent_id,
    children and level fields are overwritten.

    Args:
        flat: Blocks in document order, each declaring its intended level

    Returns:
        New tree satisfying all structural invariants
    """
    tree = BlockTree()
    stack: list[Block] = []
    previous_level = MIN_LEVEL - 1

    for block in flat:
        if block.id in tree.blocks:
            logger.warning("rebuild_duplicate_block_skipped", block_id=block.id)
            continue

        level = max(MIN_LEVEL, min(block.level, previous_level + 1))
        if level != block.level:
            logger.debug(
                "rebuild_level_clamped",
                block_id=block.id,
                requested=block.level,
                clamped=level,
            )

        block.level = level
        block.parent_id = None
        block.children = []

        while stack and stack[-1].level >= level:
            stack.pop()

        if stack:
            parent = stack[-1]
            block.parent_id = parent.id
            parent.children.append(block.id)
        else:
            tree.roots.append(block.id)

        stack.append(block)
        tree.blocks[block.id] = block
        previous_level = level

    return tree


def visible_order(tree: BlockTree) -> list[str]:
    """Ids of visible blocks in document order (collapsed subtrees excluded)."""
    return list(iter_preorder(tree, include_collapsed=False))


def descendant_ids(tree: BlockTree, block_id: str) -> list[str]:
    """Transitive closure over children, in pre-order, excluding block_id."""
    block = tree.get(block_id)
    if block is None:
        return []

    result: list[str] = []
    stack = list(reversed(block.children))
    while stack:
        current = stack.pop()
        result.append(current)
        stack.extend(reversed(tree.blocks[current].children))
    return result


def deepest_level(tree: BlockTree, block_id: str) -> int:
    """Highest level found in the subtree rooted at block_id."""
    levels = [tree.blocks[current].level for current in [block_id, *descendant_ids(tree, block_id)]]
    return max(levels)


def ancestor_ids(tree: BlockTree, block_id: str) -> list[str]:
    """Ancestors from immediate parent up to the root."""
    result: list[str] = []
    block = tree.get(block_id)
    while block is not None and block.parent_id is not None:
        result.append(block.parent_id)
        block = tree.get(block.parent_id)
    return result


def index_of(flat: list[Block], block_id: str) -> int:
    """Position of block_id in a flat list, or -1."""
    for i, block in enumerate(flat):
        if block.id == block_id:
            return i
    return -1


def subtree_end(flat: list[Block], index: int) -> int:
    """Index one past the last descendant of flat[index]."""
    level = flat[index].level
    end = index + 1
    while end < len(flat) and flat[end].level > level:
        end += 1
    return end


def previous_sibling_id(tree: BlockTree, block_id: str) -> Optional[str]:
    siblings = tree.siblings_of(block_id)
    if block_id not in siblings:
        return None
    position = siblings.index(block_id)
    return siblings[position - 1] if position > 0 else None


def next_sibling_id(tree: BlockTree, block_id: str) -> Optional[str]:
    siblings = tree.siblings_of(block_id)
    if block_id not in siblings:
        return None
    position = siblings.index(block_id)
    return siblings[position + 1] if position + 1 < len(siblings) else None


def get_previous_block(tree: BlockTree, block_id: str) -> Optional[str]:
    """Block immediately before block_id in full document order."""
    order = tree.ids()
    if block_id not in order:
        return None
    position = order.index(block_id)
    return order[position - 1] if position > 0 else None


def get_next_block(tree: BlockTree, block_id: str) -> Optional[str]:
    """Block immediately after block_id in full document order."""
    order = tree.ids()
    if block_id not in order:
        return None
    position = order.index(block_id)
    return order[position + 1] if position + 1 < len(order) else None


def check_invariants(tree: BlockTree) -> list[str]:
    """Describe every structural invariant violation found in tree.

    Returns:
        Human-readable problems (empty list when the tree is consistent)
    """
    problems: list[str] = []
    seen: set[str] = set()

    for root_id in tree.roots:
        root = tree.blocks.get(root_id)
        if root is None:
            problems.append(f"root {root_id} is not in the arena")
            continue
        if root.parent_id is not None:
            problems.append(f"root {root_id} has parent {root.parent_id}")
        if root.level != MIN_LEVEL:
            problems.append(f"root {root_id} has level {root.level}")

    stack = list(tree.roots)
    while stack:
        block_id = stack.pop()
        if block_id in seen:
            problems.append(f"block {block_id} reachable twice (cycle or shared child)")
            continue
        seen.add(block_id)
        block = tree.blocks.get(block_id)
        if block is None:
            continue
        for child_id in block.children:
            child = tree.blocks.get(child_id)
            if child is None:
                problems.append(f"child {child_id} of {block_id} is not in the arena")
                continue
            if child.parent_id != block_id:
                problems.append(f"child {child_id} points to parent {child.parent_id}, expected {block_id}")
            if child.level != block.level + 1:
                problems.append(
                    f"child {child_id} has level {child.level}, parent {block_id} has {block.level}"
                )
            stack.append(child_id)

    orphans = set(tree.blocks) - seen
    for orphan in sorted(orphans):
        problems.append(f"block {orphan} is unreachable from the roots")

    return problems
