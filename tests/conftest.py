"""Shared test fixtures for all test modules."""

import pytest

from blocksmith.outline.block import Block
from blocksmith.outline.tree import BlockTree, rebuild
from blocksmith.services.exceptions import PersistenceError


def build_tree(*rows) -> BlockTree:
    """Build a tree from (id, level) or (id, level, content) rows in document order.

    Content defaults to the id in upper case.
    """
    blocks = []
    for row in rows:
        block_id, level = row[0], row[1]
        content = row[2] if len(row) > 2 else block_id.upper()
        blocks.append(Block(id=block_id, content=content, level=level))
    return rebuild(blocks)


@pytest.fixture
def make_tree():
    """Factory fixture wrapping build_tree."""
    return build_tree


@pytest.fixture
def sample_tree():
    """
    Small outline used across tests:

        - A
          - A1
            - A1X
          - A2
        - B
        - C
    """
    return build_tree(
        ("a", 0),
        ("a1", 1),
        ("a1x", 2),
        ("a2", 1),
        ("b", 0),
        ("c", 0),
    )


def outline_shape(tree: BlockTree) -> list[tuple[str, int]]:
    """(id, level) pairs in document order, for compact assertions."""
    return [(block_id, tree.blocks[block_id].level) for block_id in tree.ids()]


@pytest.fixture
def shape():
    return outline_shape


class RecordingBackend:
    """Persistence backend that records calls and can be told to fail."""

    def __init__(self):
        self.calls = []
        self.fail_on = set()
        self.raise_on = set()

    def _record(self, kind, *args):
        if kind in self.raise_on:
            raise PersistenceError(f"{kind} rejected")
        if kind in self.fail_on:
            return False
        self.calls.append((kind,) + args)
        return True

    async def commit_content(self, block_id, content):
        return self._record("commit_content", block_id, content)

    async def create_block(self, block_id, parent_id, after_block_id, content, block_type):
        return self._record("create_block", block_id, parent_id, after_block_id, content, block_type)

    async def delete_block(self, block_id):
        return self._record("delete_block", block_id)

    async def move_block(self, block_id, parent_id, after_block_id):
        return self._record("move_block", block_id, parent_id, after_block_id)

    async def update_block(self, block_id, block_type, language, collapsed):
        return self._record("update_block", block_id, block_type, language, collapsed)


@pytest.fixture
def backend():
    """Recording persistence backend."""
    return RecordingBackend()
