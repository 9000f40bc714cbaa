"""Structural mutation requests accepted by the engine.

BlockAction is a closed union: engine.apply() matches every member
explicitly, so adding a variant here without handling it there fails the
exhaustiveness check at the bottom of apply().
"""

from dataclasses import dataclass
from typing import Optional, Union

from blocksmith.outline.block import BlockType


@dataclass(frozen=True)
class AddBlock:
    """Insert a new block after after_block_id (end of document when None)."""

    after_block_id: Optional[str] = None
    level: Optional[int] = None
    content: str = ""
    block_type: BlockType = BlockType.BULLET
    language: Optional[str] = None
    new_block_id: Optional[str] = None


@dataclass(frozen=True)
class DeleteBlock:
    block_id: str


@dataclass(frozen=True)
class UpdateContent:
    block_id: str
    content: str


@dataclass(frozen=True)
class ChangeBlockType:
    block_id: str
    block_type: BlockType
    language: Optional[str] = None


@dataclass(frozen=True)
class IndentBlock:
    block_id: str


@dataclass(frozen=True)
class OutdentBlock:
    block_id: str


@dataclass(frozen=True)
class MoveUp:
    block_id: str


@dataclass(frozen=True)
class MoveDown:
    block_id: str


@dataclass(frozen=True)
class ToggleCollapse:
    block_id: str


@dataclass(frozen=True)
class MergeWithPrevious:
    block_id: str


@dataclass(frozen=True)
class SplitAtOffset:
    """Split content at offset; the tail moves into a new sibling."""

    block_id: str
    offset: int
    new_block_id: Optional[str] = None


BlockAction = Union[
    AddBlock,
    DeleteBlock,
    UpdateContent,
    ChangeBlockType,
    IndentBlock,
    OutdentBlock,
    MoveUp,
    MoveDown,
    ToggleCollapse,
    MergeWithPrevious,
    SplitAtOffset,
]
