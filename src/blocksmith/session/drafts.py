"""Uncommitted block content.

Keystrokes update a per-block draft instead of the tree. Drafts are taken
out and committed at flush points: focus loss, navigation, any structural
mutation, an explicit save, or once the debounce delay has passed. A block
that is in the middle of an input-method composition is held back so a
multi-keystroke character is never committed half-way.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)

# Seconds of float error allowed when comparing monotonic timestamps
_CLOCK_TOLERANCE = 1e-6


@dataclass
class Draft:
    block_id: str
    content: str
    updated_at: float = field(default_factory=time.monotonic)


class DraftBuffer:
    """Pending content per block, last write wins."""

    def __init__(self) -> None:
        self._drafts: dict[str, Draft] = {}
        self._composing: set[str] = set()

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._drafts

    def __len__(self) -> int:
        return len(self._drafts)

    def stage(self, block_id: str, content: str) -> None:
        """Record the latest content typed into a block."""
        self._drafts[block_id] = Draft(block_id=block_id, content=content)

    def get(self, block_id: str) -> Optional[str]:
        draft = self._drafts.get(block_id)
        return draft.content if draft else None

    def pending_ids(self) -> list[str]:
        return list(self._drafts)

    def discard(self, block_id: str) -> None:
        self._drafts.pop(block_id, None)
        self._composing.discard(block_id)

    def clear(self) -> None:
        self._drafts.clear()
        self._composing.clear()

    # Input-method composition

    def begin_composition(self, block_id: str) -> None:
        self._composing.add(block_id)

    def end_composition(self, block_id: str) -> None:
        self._composing.discard(block_id)

    def is_composing(self, block_id: str) -> bool:
        return block_id in self._composing

    # Flushing

    def due(self, delay_ms: int, now: Optional[float] = None) -> list[str]:
        """Ids whose last edit is older than the debounce delay."""
        now = time.monotonic() if now is None else now
        threshold = delay_ms / 1000 - _CLOCK_TOLERANCE
        return [
            block_id
            for block_id, draft in self._drafts.items()
            if block_id not in self._composing and now - draft.updated_at >= threshold
        ]

    def take(self, block_ids: Optional[list[str]] = None) -> dict[str, str]:
        """Remove and return drafts ready to commit.

        Args:
            block_ids: Restrict to these blocks (all pending blocks when None)

        Returns:
            Mapping of block id to content, in staging order. Blocks that
            are mid-composition stay in the buffer.
        """
        candidates = self.pending_ids() if block_ids is None else block_ids
        taken: dict[str, str] = {}
        for block_id in candidates:
            if block_id in self._composing:
                logger.debug("draft_held_for_composition", block_id=block_id)
                continue
            draft = self._drafts.pop(block_id, None)
            if draft is not None:
                taken[block_id] = draft.content
        return taken
