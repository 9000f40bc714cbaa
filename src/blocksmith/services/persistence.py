"""Persistence collaborator contract and the markdown file mirror.

The editor mutates its in-memory tree first and then queues PersistenceOps
describing the change. Ops are drained asynchronously to a backend, so
durable storage is eventually consistent with memory.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Optional, Protocol

import structlog

from blocksmith.outline.block import BlockType
from blocksmith.outline.tree import BlockTree, previous_sibling_id
from blocksmith.services.exceptions import FileModifiedError


logger = structlog.get_logger()

OpKind = Literal["commit_content", "create_block", "delete_block", "move_block", "update_block"]


class PersistenceBackend(Protocol):
    """Durable storage mirroring the in-memory tree.

    Every method returns True on success and False on a recoverable
    failure (the op is retried on the next sync).
    """

    async def commit_content(self, block_id: str, content: str) -> bool: ...

    async def create_block(
        self,
        block_id: str,
        parent_id: Optional[str],
        after_block_id: Optional[str],
        content: str,
        block_type: BlockType,
    ) -> bool: ...

    async def delete_block(self, block_id: str) -> bool: ...

    async def move_block(
        self, block_id: str, parent_id: Optional[str], after_block_id: Optional[str]
    ) -> bool: ...

    async def update_block(
        self, block_id: str, block_type: BlockType, language: Optional[str], collapsed: bool
    ) -> bool: ...


@dataclass(frozen=True)
class PersistenceOp:
    """One queued change, with the data it had when it was queued.

    Attributes:
        kind: Backend method to call
        block_id: Block the change applies to
        parent_id: New parent (create/move)
        after_block_id: Previous sibling after the change (create/move)
        content: Content (commit/create)
        block_type: Block type (create/update)
        language: Code language (update)
        collapsed: Collapse flag (update)
    """

    kind: OpKind
    block_id: str
    parent_id: Optional[str] = None
    after_block_id: Optional[str] = None
    content: Optional[str] = None
    block_type: BlockType = BlockType.BULLET
    language: Optional[str] = None
    collapsed: bool = False

    async def send(self, backend: PersistenceBackend) -> bool:
        """Call the matching backend method."""
        if self.kind == "commit_content":
            return await backend.commit_content(self.block_id, self.content or "")
        elif self.kind == "create_block":
            return await backend.create_block(
                self.block_id, self.parent_id, self.after_block_id, self.content or "", self.block_type
            )
        elif self.kind == "delete_block":
            return await backend.delete_block(self.block_id)
        elif self.kind == "move_block":
            return await backend.move_block(self.block_id, self.parent_id, self.after_block_id)
        elif self.kind == "update_block":
            return await backend.update_block(
                self.block_id, self.block_type, self.language, self.collapsed
            )
        raise ValueError(f"Unknown persistence op: {self.kind}")


def diff_trees(before: BlockTree, after: BlockTree) -> list[PersistenceOp]:
    """Describe how to turn `before` into `after` as backend operations.

    Deletes come first (only the topmost removed block of each removed
    subtree; backends cascade), then creates and moves in document order,
    then content and attribute updates.

    Args:
        before: Tree before the mutation
        after: Tree after the mutation

    Returns:
        Ordered list of PersistenceOps (empty when the trees match)
    """
    ops: list[PersistenceOp] = []

    removed = set(before.blocks) - set(after.blocks)
    for block_id in before.ids():
        if block_id in removed and before.blocks[block_id].parent_id not in removed:
            ops.append(PersistenceOp(kind="delete_block", block_id=block_id))

    updates: list[PersistenceOp] = []
    for block_id in after.ids():
        block = after.blocks[block_id]
        after_sibling = previous_sibling_id(after, block_id)
        old = before.get(block_id)

        if old is None:
            ops.append(
                PersistenceOp(
                    kind="create_block",
                    block_id=block_id,
                    parent_id=block.parent_id,
                    after_block_id=after_sibling,
                    content=block.content,
                    block_type=block.block_type,
                )
            )
            continue

        if old.parent_id != block.parent_id or previous_sibling_id(before, block_id) != after_sibling:
            ops.append(
                PersistenceOp(
                    kind="move_block",
                    block_id=block_id,
                    parent_id=block.parent_id,
                    after_block_id=after_sibling,
                )
            )

        if old.content != block.content:
            updates.append(PersistenceOp(kind="commit_content", block_id=block_id, content=block.content))

        if (old.block_type, old.language, old.collapsed) != (block.block_type, block.language, block.collapsed):
            updates.append(
                PersistenceOp(
                    kind="update_block",
                    block_id=block_id,
                    block_type=block.block_type,
                    language=block.language,
                    collapsed=block.collapsed,
                )
            )

    return ops + updates


def atomic_write(path: Path, content: str) -> None:
    """
    Atomically write content to file with temp-file-rename pattern.

    Args:
        path: Target file path
        content: Content to write

    Raises:
        OSError: On file I/O errors
    """
    temp_path = path.parent / f".{path.name}.tmp.{os.getpid()}"

    try:
        temp_path.write_text(content, encoding="utf-8")

        # Ensure data is written to disk (fsync)
        with open(temp_path, "r+", encoding="utf-8") as f:
            f.flush()
            os.fsync(f.fileno())

        temp_path.replace(path)
        logger.debug("atomic_write_success", path=str(path), size=len(content))

    except Exception as e:
        if temp_path.exists():
            temp_path.unlink()
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        raise


class MarkdownMirror:
    """Backend that keeps one markdown file in sync with the editor.

    Every operation rewrites the whole file from a snapshot callable, so
    the op payloads only serve as change notifications. Before writing,
    the file's modification time is compared with the last one seen; an
    external edit raises FileModifiedError instead of being overwritten.

    Example:
        >>> mirror = MarkdownMirror(path, snapshot=lambda: document.render())
        >>> editor = OutlineEditor(document, backend=mirror)
    """

    def __init__(self, path: Path, snapshot: Callable[[], str], atomic: bool = True):
        """
        Initialize the mirror.

        Args:
            path: Markdown file to keep in sync
            snapshot: Returns the full markdown to write
            atomic: Use temp-file-rename writes
        """
        self.path = path
        self.snapshot = snapshot
        self.atomic = atomic
        self.writes = 0
        self._mtime: Optional[float] = None
        if path.exists():
            self.record()

    def record(self) -> None:
        """Remember the file's current modification time."""
        self._mtime = self.path.stat().st_mtime

    def is_modified(self) -> bool:
        """True if the file changed since the last record()."""
        if not self.path.exists():
            return self._mtime is not None
        if self._mtime is None:
            return True
        return self.path.stat().st_mtime != self._mtime

    def write(self) -> bool:
        """Write the current snapshot to disk.

        Returns:
            True on success, False on an I/O error

        Raises:
            FileModifiedError: If the file was changed outside the editor
        """
        if (self.path.exists() or self._mtime is not None) and self.is_modified():
            raise FileModifiedError(str(self.path))

        text = self.snapshot()
        if text and not text.endswith("\n"):
            text += "\n"

        try:
            if self.atomic:
                atomic_write(self.path, text)
            else:
                self.path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.error("markdown_mirror_write_failed", path=str(self.path), error=str(e))
            return False

        self.record()
        self.writes += 1
        return True

    async def commit_content(self, block_id: str, content: str) -> bool:
        return self.write()

    async def create_block(
        self,
        block_id: str,
        parent_id: Optional[str],
        after_block_id: Optional[str],
        content: str,
        block_type: BlockType,
    ) -> bool:
        return self.write()

    async def delete_block(self, block_id: str) -> bool:
        return self.write()

    async def move_block(
        self, block_id: str, parent_id: Optional[str], after_block_id: Optional[str]
    ) -> bool:
        return self.write()

    async def update_block(
        self, block_id: str, block_type: BlockType, language: Optional[str], collapsed: bool
    ) -> bool:
        return self.write()
