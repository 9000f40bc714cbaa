"""Unit tests for batch operations over multi-selections."""

from blocksmith.outline.block import BlockType
from blocksmith.outline.tree import check_invariants
from blocksmith.session.batch import (
    can_collapse_blocks,
    can_indent_blocks,
    can_move_blocks_down,
    can_move_blocks_up,
    can_outdent_blocks,
    change_block_type,
    collapsible_count,
    delete_blocks,
    duplicate_blocks,
    indent_blocks,
    move_blocks_down,
    move_blocks_up,
    order_targets,
    outdent_blocks,
    resolve_targets,
    toggle_collapse_blocks,
    top_level_targets,
)
from blocksmith.session.selection import EditorSession


class TestTargets:
    """Test how batch targets are resolved and ordered."""

    def test_selection_wins_over_focus(self):
        """Test that a selection takes precedence over the focused block."""
        session = EditorSession()
        session.set_focus("a")
        assert resolve_targets(session) == ["a"]

        session.set_selection(["b", "c"])
        assert resolve_targets(session) == ["b", "c"]

        assert resolve_targets(EditorSession()) == []

    def test_order_targets(self, sample_tree):
        """Test document ordering and removal of unknown ids."""
        assert order_targets(sample_tree, ["c", "a1", "gone", "a1"]) == ["a1", "c"]

    def test_top_level_targets(self, sample_tree):
        """Test that members covered by a member ancestor are dropped."""
        assert top_level_targets(sample_tree, ["a1x", "a", "b"]) == ["a", "b"]


class TestIndent:
    """Test batch indent and outdent."""

    def test_all_or_nothing(self, make_tree):
        """Test that one ineligible member blocks the whole batch."""
        tree = make_tree(("x", 0), ("y", 0), ("z", 0))

        assert not can_indent_blocks(tree, ["x", "y", "z"])
        result = indent_blocks(tree, ["x", "y", "z"])

        assert result.tree is tree
        assert not result.changed
        assert all(tree.blocks[i].level == 0 for i in "xyz")

    def test_indent_consecutive_siblings(self, make_tree, shape):
        """Test indenting adjacent siblings under a shared parent."""
        tree = make_tree(("a", 0), ("b", 0), ("c", 0))

        result = indent_blocks(tree, ["b", "c"])

        assert result.applied_ids == ["b", "c"]
        assert shape(result.tree) == [("a", 0), ("b", 1), ("c", 1)]
        assert result.tree.blocks["a"].children == ["b", "c"]

    def test_indent_skips_covered_descendants(self, make_tree, shape):
        """Test that a selected child moves with its selected parent only once."""
        tree = make_tree(("a", 0), ("b", 0), ("b1", 1))

        result = indent_blocks(tree, ["b", "b1"])

        assert result.applied_ids == ["b"]
        assert shape(result.tree) == [("a", 0), ("b", 1), ("b1", 2)]

    def test_outdent_any_member(self, sample_tree):
        """Test that outdent is allowed when some member can move."""
        assert can_outdent_blocks(sample_tree, ["a1", "b"])
        assert not can_outdent_blocks(sample_tree, ["a", "b"])

        result = outdent_blocks(sample_tree, ["a1", "b"])

        assert result.applied_ids == ["a1"]
        assert result.tree.blocks["a1"].parent_id is None
        assert check_invariants(result.tree) == []

    def test_outdent_nothing_eligible(self, sample_tree):
        """Test that outdent with only roots is a no-op."""
        assert outdent_blocks(sample_tree, ["a", "c"]).tree is sample_tree


class TestMove:
    """Test batch moves."""

    def test_move_up_keeps_relative_order(self, make_tree):
        """Test moving two adjacent blocks up."""
        tree = make_tree(("a", 0), ("b", 0), ("c", 0), ("d", 0))

        result = move_blocks_up(tree, ["b", "c"])

        assert result.tree.roots == ["b", "c", "a", "d"]

    def test_move_down_keeps_relative_order(self, make_tree):
        """Test moving two adjacent blocks down (last member first)."""
        tree = make_tree(("a", 0), ("b", 0), ("c", 0), ("d", 0))

        result = move_blocks_down(tree, ["b", "c"])

        assert result.tree.roots == ["a", "d", "b", "c"]
        assert result.applied_ids == ["c", "b"]

    def test_move_blocked_at_edge(self, make_tree):
        """Test that a member at the edge blocks the batch."""
        tree = make_tree(("a", 0), ("b", 0), ("c", 0))

        assert not can_move_blocks_up(tree, ["a", "b"])
        assert not can_move_blocks_down(tree, ["b", "c"])
        assert move_blocks_up(tree, ["a", "b"]).tree is tree
        assert move_blocks_down(tree, ["b", "c"]).tree is tree
        assert not can_move_blocks_up(tree, [])


class TestCollapseDeleteDuplicate:
    """Test the remaining batch commands."""

    def test_collapse_only_parents(self, sample_tree):
        """Test that leaves are ignored when collapsing a batch."""
        assert can_collapse_blocks(sample_tree, ["a", "b"])
        assert collapsible_count(sample_tree, ["a", "a1", "b", "c"]) == 2
        assert not can_collapse_blocks(sample_tree, ["b", "c"])

        result = toggle_collapse_blocks(sample_tree, ["a", "b"])

        assert result.applied_ids == ["a"]
        assert result.tree.blocks["a"].collapsed

    def test_delete_clears_selection(self, sample_tree):
        """Test deleting selected blocks and their subtrees."""
        session = EditorSession()
        session.set_selection(["a1", "c"])
        session.set_anchor("a1")
        session.set_focus("a1x")

        result = delete_blocks(sample_tree, resolve_targets(session), session)

        assert set(result.tree.blocks) == {"a", "a2", "b"}
        assert session.selected_block_ids == []
        assert session.selection_anchor_id is None
        assert session.focused_block_id is None

    def test_change_type(self, sample_tree):
        """Test changing the type of several blocks."""
        result = change_block_type(sample_tree, ["b", "c", "gone"], BlockType.FENCE)

        assert result.applied_ids == ["b", "c"]
        assert result.tree.blocks["c"].block_type == BlockType.FENCE

    def test_duplicate_shallow(self, make_tree):
        """Test that a shallow duplicate copies only the block."""
        tree = make_tree(("a", 0, "Alpha"), ("a1", 1), ("b", 0))

        result = duplicate_blocks(tree, ["a"])

        (copy_id,) = result.created_ids
        assert result.tree.roots == ["a", copy_id, "b"]
        assert result.tree.blocks[copy_id].content == "Alpha"
        assert result.tree.blocks[copy_id].children == []

    def test_duplicate_deep(self, sample_tree, shape):
        """Test that a deep duplicate copies the subtree with relative levels."""
        result = duplicate_blocks(sample_tree, ["a"], deep=True)

        assert len(result.created_ids) == 4
        copy_id = result.created_ids[0]
        assert result.tree.roots == ["a", copy_id, "b", "c"]
        copies = [result.tree.blocks[i] for i in result.created_ids]
        assert [block.content for block in copies] == ["A", "A1", "A1X", "A2"]
        assert [block.level for block in copies] == [0, 1, 2, 1]
        assert check_invariants(result.tree) == []
