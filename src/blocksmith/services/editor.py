"""Command surface of the outline editor.

OutlineEditor ties together the document tree, the editing session, the
draft buffer and an optional persistence backend. Host UIs call its named
commands with a block id, a set of ids, or nothing (meaning: the current
selection, or the focused block when nothing is selected), and use the
matching can_* predicates to enable or disable affordances.

Ordering rules enforced here:
- pending drafts are committed before any structural mutation
- the tree is replaced first, session cleanup happens as a separate step
- persistence ops are queued after the in-memory change and sent by sync()
"""

import asyncio
from typing import Iterable, Literal, Optional, Union

import structlog

from blocksmith.models.config import EditorConfig
from blocksmith.outline.actions import (
    AddBlock,
    ChangeBlockType,
    MergeWithPrevious,
    SplitAtOffset,
    UpdateContent,
)
from blocksmith.outline.block import BlockType
from blocksmith.outline.conversion import check_block_conversion
from blocksmith.outline.engine import apply, can_merge_with_previous, can_split
from blocksmith.outline.markdown import OutlineDocument
from blocksmith.outline.tree import (
    BlockTree,
    ancestor_ids,
    deepest_level,
    descendant_ids,
    get_previous_block,
    visible_order,
)
from blocksmith.services.clipboard import export_blocks
from blocksmith.services.exceptions import PersistenceError
from blocksmith.services.persistence import PersistenceBackend, PersistenceOp, diff_trees
from blocksmith.session import batch
from blocksmith.session.cursor import (
    is_on_first_line,
    is_on_last_line,
    navigate_horizontal,
    navigate_vertical,
)
from blocksmith.session.drafts import DraftBuffer
from blocksmith.session.selection import EditorSession
from blocksmith.utils.ids import generate_block_id


logger = structlog.get_logger()

Targets = Union[str, Iterable[str], None]
Direction = Literal["up", "down", "left", "right"]


class OutlineEditor:
    """Named editing commands over one open document.

    Example:
        >>> editor = OutlineEditor(OutlineDocument.parse("- A\\n- B"))
        >>> a, b = editor.tree.roots
        >>> editor.focus(b)
        >>> editor.can_indent()
        True
        >>> tree = editor.indent()
        >>> tree.blocks[b].parent_id == a
        True
    """

    def __init__(
        self,
        document: OutlineDocument,
        session: Optional[EditorSession] = None,
        backend: Optional[PersistenceBackend] = None,
        config: Optional[EditorConfig] = None,
    ):
        """Open a document for editing.

        Args:
            document: Parsed document (its tree is replaced on every change)
            session: Session state (a fresh one is created when omitted)
            backend: Persistence collaborator; None keeps changes in memory
            config: Editor settings
        """
        self.document = document
        self.session = session or EditorSession()
        self.drafts = DraftBuffer()
        self.backend = backend
        self.config = config or EditorConfig()
        self.outbox: list[PersistenceOp] = []
        self._sync_lock = asyncio.Lock()

    @property
    def tree(self) -> BlockTree:
        return self.document.tree

    def visible_order(self) -> list[str]:
        return visible_order(self.tree)

    def content_of(self, block_id: str) -> Optional[str]:
        """Content as the user sees it: the draft if any, else the tree's."""
        draft = self.drafts.get(block_id)
        if draft is not None:
            return draft
        block = self.tree.get(block_id)
        return block.content if block else None

    def _targets(self, targets: Targets) -> list[str]:
        if targets is None:
            return batch.resolve_targets(self.session)
        if isinstance(targets, str):
            return [targets]
        return list(targets)

    def _commit(self, new_tree: BlockTree, command: str) -> bool:
        """Install a new tree, queue its persistence ops, then prune the session."""
        if new_tree is self.tree:
            logger.debug("command_noop", command=command)
            return False

        ops = diff_trees(self.tree, new_tree)
        self.document.tree = new_tree
        self.outbox.extend(ops)
        self.session.prune(new_tree.blocks)
        logger.debug("command_applied", command=command, ops=len(ops), blocks=len(new_tree))
        return True

    # Content editing

    def edit(self, block_id: str, content: str) -> bool:
        """Stage typed content for a block without touching the tree."""
        if block_id not in self.tree:
            logger.debug("edit_block_not_found", block_id=block_id)
            return False
        self.drafts.stage(block_id, content)
        return True

    def commit(self, block_id: str, content: Optional[str] = None) -> BlockTree:
        """Write a block's content into the tree now, bypassing the debounce."""
        if content is not None and not self.edit(block_id, content):
            return self.tree
        self.flush([block_id])
        return self.tree

    def flush(self, block_ids: Optional[list[str]] = None) -> bool:
        """Commit pending drafts into the tree.

        A draft that consists only of a fence or code opener converts the
        block's type instead of being stored as text.

        Args:
            block_ids: Restrict to these blocks (all pending when None)

        Returns:
            True if the tree changed
        """
        pending = self.drafts.take(block_ids)
        if not pending:
            return False

        tree = self.tree
        for block_id, content in pending.items():
            block = tree.get(block_id)
            if block is None:
                logger.debug("draft_dropped_block_gone", block_id=block_id)
                continue

            conversion = check_block_conversion(block, content)
            if conversion is not None:
                tree = apply(tree, ChangeBlockType(block_id, conversion.block_type, conversion.language))
                content = ""
                logger.info("block_converted", block_id=block_id, block_type=conversion.block_type.value)

            tree = apply(tree, UpdateContent(block_id=block_id, content=content))

        return self._commit(tree, "flush")

    def flush_due(self) -> bool:
        """Commit drafts idle for longer than the configured debounce delay."""
        due = self.drafts.due(self.config.draft_flush_ms)
        return self.flush(due) if due else False

    # Focus and navigation

    def focus(self, block_id: Optional[str], cursor_pos: Optional[int] = None) -> bool:
        """Move focus, committing the draft of the block being left."""
        if block_id is not None and block_id not in self.tree:
            return False

        previous = self.session.focused_block_id
        if previous is not None and previous != block_id:
            self.flush([previous])

        self.session.set_focus(block_id, cursor_pos)
        return True

    def blur(self) -> None:
        """Drop focus, committing its draft."""
        if self.session.focused_block_id is not None:
            self.flush([self.session.focused_block_id])
        self.session.clear_focus()

    def navigate(self, direction: Direction, cursor_pos: int, block_id: Optional[str] = None) -> Optional[str]:
        """Handle an arrow key at the caret position.

        Returns:
            The newly focused block id, or None if the caret stays put
        """
        block_id = block_id or self.session.focused_block_id
        if block_id is None:
            return None

        content = self.content_of(block_id)
        if content is None:
            return None

        at_boundary = {
            "up": is_on_first_line(content, cursor_pos),
            "down": is_on_last_line(content, cursor_pos),
            "left": cursor_pos <= 0,
            "right": cursor_pos >= len(content),
        }[direction]
        if not at_boundary:
            return None

        self.flush([block_id])
        order = self.visible_order()
        if direction in ("up", "down"):
            return navigate_vertical(self.session, self.tree, order, block_id, cursor_pos, direction)
        return navigate_horizontal(self.session, self.tree, order, block_id, cursor_pos, direction)

    # Eligibility predicates

    def can_indent(self, targets: Targets = None) -> bool:
        ids = self._targets(targets)
        if not batch.can_indent_blocks(self.tree, ids):
            return False
        return all(deepest_level(self.tree, block_id) < self.config.max_level for block_id in ids)

    def can_outdent(self, targets: Targets = None) -> bool:
        return batch.can_outdent_blocks(self.tree, self._targets(targets))

    def can_move_up(self, targets: Targets = None) -> bool:
        return batch.can_move_blocks_up(self.tree, self._targets(targets))

    def can_move_down(self, targets: Targets = None) -> bool:
        return batch.can_move_blocks_down(self.tree, self._targets(targets))

    def can_collapse(self, targets: Targets = None) -> bool:
        return batch.can_collapse_blocks(self.tree, self._targets(targets))

    def can_delete(self, targets: Targets = None) -> bool:
        return any(block_id in self.tree for block_id in self._targets(targets))

    def can_duplicate(self, targets: Targets = None) -> bool:
        return self.can_delete(targets)

    def can_merge_with_previous(self, block_id: Optional[str] = None) -> bool:
        block_id = block_id or self.session.focused_block_id
        return block_id is not None and can_merge_with_previous(self.tree, block_id)

    def can_split(self, block_id: Optional[str] = None) -> bool:
        block_id = block_id or self.session.focused_block_id
        return block_id is not None and can_split(self.tree, block_id)

    # Structural commands

    def indent(self, targets: Targets = None) -> BlockTree:
        ids = self._targets(targets)
        self.flush()
        if not self.can_indent(ids):
            logger.debug("indent_ineligible", targets=ids)
            return self.tree
        self._commit(batch.indent_blocks(self.tree, ids).tree, "indent")
        return self.tree

    def outdent(self, targets: Targets = None) -> BlockTree:
        ids = self._targets(targets)
        self.flush()
        self._commit(batch.outdent_blocks(self.tree, ids).tree, "outdent")
        return self.tree

    def move_up(self, targets: Targets = None) -> BlockTree:
        ids = self._targets(targets)
        self.flush()
        self._commit(batch.move_blocks_up(self.tree, ids).tree, "move_up")
        return self.tree

    def move_down(self, targets: Targets = None) -> BlockTree:
        ids = self._targets(targets)
        self.flush()
        self._commit(batch.move_blocks_down(self.tree, ids).tree, "move_down")
        return self.tree

    def toggle_collapse(self, targets: Targets = None) -> BlockTree:
        ids = self._targets(targets)
        self.flush()
        self._commit(batch.toggle_collapse_blocks(self.tree, ids).tree, "toggle_collapse")
        self._refocus_visible()
        return self.tree

    def change_type(self, block_type: BlockType, targets: Targets = None, language: Optional[str] = None) -> BlockTree:
        ids = self._targets(targets)
        self.flush()
        self._commit(batch.change_block_type(self.tree, ids, block_type, language).tree, "change_type")
        return self.tree

    def delete(self, targets: Targets = None) -> BlockTree:
        """Delete blocks with their subtrees; focus lands on the block before them."""
        ids = self._targets(targets)
        self.flush()

        order = self.visible_order()
        doomed = set(ids)
        for block_id in ids:
            doomed.update(descendant_ids(self.tree, block_id))
        landing = None
        first_index = min((order.index(i) for i in ids if i in order), default=None)
        if first_index is not None:
            landing = next((i for i in reversed(order[:first_index]) if i not in doomed), None)

        result = batch.delete_blocks(self.tree, ids)
        if not self._commit(result.tree, "delete"):
            return self.tree

        self.session.clear_selection()
        if self.session.focused_block_id is None and landing is not None:
            self.session.set_focus(landing, len(self.tree.blocks[landing].content))
        return self.tree

    def duplicate(self, targets: Targets = None, deep: bool = False) -> list[str]:
        """Duplicate blocks; returns the ids of the created blocks."""
        ids = self._targets(targets)
        self.flush()
        result = batch.duplicate_blocks(self.tree, ids, deep=deep)
        self._commit(result.tree, "duplicate")
        return result.created_ids

    def add_block(
        self,
        after_block_id: Optional[str] = None,
        level: Optional[int] = None,
        content: str = "",
        block_type: BlockType = BlockType.BULLET,
        focus: bool = True,
    ) -> Optional[str]:
        """Insert a new block and (by default) focus it.

        Returns:
            New block id, or None if the anchor block does not exist
        """
        self.flush()
        new_id = generate_block_id()
        action = AddBlock(
            after_block_id=after_block_id,
            level=level,
            content=content,
            block_type=block_type,
            new_block_id=new_id,
        )
        if not self._commit(apply(self.tree, action), "add_block"):
            return None
        if focus:
            self.session.set_focus(new_id, 0)
        return new_id

    def split_at(self, block_id: Optional[str] = None, offset: Optional[int] = None) -> Optional[str]:
        """Split a block at offset (default: pending caret or end of content).

        Returns:
            Id of the new block holding the tail, now focused at offset 0
        """
        block_id = block_id or self.session.focused_block_id
        if block_id is None:
            return None
        self.flush()
        block = self.tree.get(block_id)
        if block is None:
            return None
        if offset is None:
            offset = len(block.content)

        new_id = generate_block_id()
        action = SplitAtOffset(block_id=block_id, offset=offset, new_block_id=new_id)
        if not self._commit(apply(self.tree, action), "split"):
            return None
        self.session.set_focus(new_id, 0)
        return new_id

    def merge_with_previous(self, block_id: Optional[str] = None) -> Optional[str]:
        """Merge a block into the one before it.

        Returns:
            Id of the receiving block, focused where the merged text starts
        """
        block_id = block_id or self.session.focused_block_id
        if block_id is None:
            return None
        self.flush()
        previous_id = get_previous_block(self.tree, block_id)
        if previous_id is None:
            return None

        join_at = len(self.tree.blocks[previous_id].content)
        self.session.begin_merge(block_id, previous_id)
        if not self._commit(apply(self.tree, MergeWithPrevious(block_id=block_id)), "merge"):
            self.session.end_merge()
            return None
        self.session.end_merge()
        self.session.set_focus(previous_id, join_at)
        return previous_id

    def handle_enter(self, block_id: str, offset: int) -> Optional[str]:
        """Enter key: split bullets, insert a newline into code/fence blocks.

        Returns:
            Id of the block that owns the caret afterwards
        """
        block = self.tree.get(block_id)
        if block is None:
            return None
        if block.block_type == BlockType.BULLET:
            return self.split_at(block_id, offset)

        content = self.content_of(block_id) or ""
        offset = max(0, min(offset, len(content)))
        self.drafts.stage(block_id, content[:offset] + "\n" + content[offset:])
        self.session.set_focus(block_id, offset + 1)
        return block_id

    def handle_backspace(self, block_id: str, offset: int) -> Optional[str]:
        """Backspace at the very start of a block merges it into the previous one."""
        if offset > 0:
            return None
        return self.merge_with_previous(block_id)

    # Selection

    def toggle_selection(self, block_id: str) -> None:
        if block_id in self.tree:
            self.session.toggle_selection(block_id)

    def select_range(self, from_id: str, to_id: str) -> None:
        self.session.select_range(from_id, to_id, self.visible_order())

    def extend_selection(self, to_id: str) -> None:
        self.session.extend_selection(to_id, self.visible_order())

    def select_all(self) -> None:
        self.session.select_all(self.visible_order())

    def clear_selection(self) -> None:
        self.session.clear_selection()

    # Clipboard

    def copy(self, targets: Targets = None, bullets: bool = False) -> str:
        """Selected blocks as indented plain text."""
        self.flush()
        return export_blocks(
            self.tree, self._targets(targets), indent=" " * self.config.indent_size, bullets=bullets
        )

    # Persistence

    async def sync(self) -> bool:
        """Send queued persistence ops to the backend in order.

        Stops at the first failure and keeps the remaining ops queued.
        Concurrent calls are serialized.

        Returns:
            True if the outbox was fully drained
        """
        if self.backend is None:
            self.outbox.clear()
            return True

        async with self._sync_lock:
            while self.outbox:
                op = self.outbox[0]
                try:
                    ok = await op.send(self.backend)
                except PersistenceError as e:
                    logger.error("persistence_op_error", kind=op.kind, block_id=op.block_id, error=str(e))
                    return False
                if not ok:
                    logger.warning("persistence_op_failed", kind=op.kind, block_id=op.block_id)
                    return False
                self.outbox.pop(0)

        logger.debug("persistence_synced")
        return True

    async def save(self) -> bool:
        """Explicit save: commit every draft, then sync."""
        self.flush()
        return await self.sync()

    def close(self) -> None:
        """Commit drafts and reset the session (document close)."""
        self.flush()
        self.drafts.clear()
        self.session.reset()

    def _refocus_visible(self) -> None:
        """If the focused block got hidden by a collapse, focus its visible ancestor."""
        focused = self.session.focused_block_id
        if focused is None:
            return
        order = self.visible_order()
        if focused in order:
            return
        for ancestor in ancestor_ids(self.tree, focused):
            if ancestor in order:
                self.session.set_focus(ancestor, len(self.tree.blocks[ancestor].content))
                return
