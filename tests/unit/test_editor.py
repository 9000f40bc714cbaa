"""Unit tests for the OutlineEditor command surface."""

import pytest

from blocksmith.models.config import EditorConfig
from blocksmith.outline.block import BlockType
from blocksmith.outline.markdown import OutlineDocument
from blocksmith.outline.tree import check_invariants
from blocksmith.services.editor import OutlineEditor


@pytest.fixture
def make_editor(make_tree):
    """Build an editor over a tree described by make_tree rows."""

    def _make(*rows, backend=None, **config):
        document = OutlineDocument(tree=make_tree(*rows))
        return OutlineEditor(document, backend=backend, config=EditorConfig(**config))

    return _make


@pytest.fixture
def editor(sample_tree):
    return OutlineEditor(OutlineDocument(tree=sample_tree))


class TestDrafts:
    """Test typing, flushing and automatic conversion."""

    def test_edit_stages_without_touching_tree(self, editor):
        """Test that typing only updates the draft."""
        before = editor.tree

        assert editor.edit("a", "typed")

        assert editor.tree is before
        assert editor.content_of("a") == "typed"
        assert editor.tree.blocks["a"].content == "A"
        assert not editor.outbox

    def test_edit_unknown_block(self, editor):
        """Test that drafts are not staged for missing blocks."""
        assert not editor.edit("gone", "x")
        assert editor.content_of("gone") is None

    def test_commit_bypasses_debounce(self, editor):
        """Test committing content immediately."""
        tree = editor.commit("b", "new")

        assert tree.blocks["b"].content == "new"
        assert [op.kind for op in editor.outbox] == ["commit_content"]

    def test_flush_due(self, make_editor):
        """Test that drafts older than the delay are committed."""
        editor = make_editor(("a", 0), draft_flush_ms=0)
        editor.edit("a", "later")

        assert editor.flush_due()
        assert editor.tree.blocks["a"].content == "later"
        assert not editor.flush_due()

    def test_composition_is_not_flushed(self, editor):
        """Test that a block mid-composition keeps its draft."""
        editor.edit("a", "ka")
        editor.drafts.begin_composition("a")

        assert not editor.flush()
        assert editor.tree.blocks["a"].content == "A"

    def test_code_opener_converts_block(self, editor):
        """Test that committing a code fence opener changes the block type."""
        editor.commit("b", "```python")

        block = editor.tree.blocks["b"]
        assert block.block_type == BlockType.CODE
        assert block.language == "python"
        assert block.content == ""

    def test_fence_delimiter_converts_block(self, editor):
        """Test that committing /// makes a fence block."""
        editor.commit("c", "///")

        assert editor.tree.blocks["c"].block_type == BlockType.FENCE
        assert editor.tree.blocks["c"].content == ""

    def test_structural_command_flushes_first(self, make_editor, shape):
        """Test that pending text is committed before a mutation."""
        editor = make_editor(("a", 0), ("b", 0))
        editor.edit("b", "typed")

        tree = editor.indent("b")

        assert tree.blocks["b"].content == "typed"
        assert shape(tree) == [("a", 0), ("b", 1)]
        assert not editor.drafts.pending_ids()


class TestFocusAndNavigation:
    """Test focus changes and arrow keys across blocks."""

    def test_focus_commits_previous_block(self, editor):
        """Test that leaving a block commits its draft."""
        editor.focus("a")
        editor.edit("a", "left behind")

        assert editor.focus("b", 0)

        assert editor.tree.blocks["a"].content == "left behind"
        assert editor.session.focused_block_id == "b"

    def test_focus_unknown_block(self, editor):
        """Test that focusing a missing block is refused."""
        assert not editor.focus("gone")

    def test_blur(self, editor):
        """Test that blur commits and drops focus."""
        editor.focus("c")
        editor.edit("c", "done")
        editor.blur()

        assert editor.session.focused_block_id is None
        assert editor.tree.blocks["c"].content == "done"

    def test_left_at_start(self, make_editor):
        """Test moving to the end of the previous block."""
        editor = make_editor(("a", 0, "hello"), ("b", 0, "world"))
        editor.focus("b")

        assert editor.navigate("left", 0) == "a"
        assert editor.session.consume_target_cursor() == 5

    def test_boundary_uses_draft_content(self, make_editor):
        """Test that the caret line is judged against the typed text."""
        editor = make_editor(("a", 0, "hello"), ("b", 0, "world"))
        editor.focus("b")
        editor.edit("b", "one\ntwo")

        assert editor.navigate("up", 5) is None
        assert editor.navigate("down", 1) is None
        assert editor.navigate("up", 1) == "a"
        assert editor.tree.blocks["b"].content == "one\ntwo"

    def test_no_focus(self, editor):
        """Test that navigation without a focused block does nothing."""
        assert editor.navigate("down", 0) is None


class TestCommands:
    """Test structural commands and their eligibility."""

    def test_max_level(self, make_editor):
        """Test that indent respects the configured maximum depth."""
        editor = make_editor(("a", 0), ("b", 1), ("c", 1), max_level=1)

        assert not editor.can_indent("c")
        assert editor.indent("c").blocks["c"].level == 1
        assert not editor.outbox

    def test_max_level_counts_descendants(self, make_editor):
        """Test that indent is refused when a child would pass the configured depth."""
        editor = make_editor(("a", 0), ("b", 0), ("b1", 1), max_level=1)

        assert not editor.can_indent("b")
        assert editor.indent("b").blocks["b1"].level == 1
        assert not editor.outbox

    def test_commands_use_selection(self, editor, shape):
        """Test that commands without targets act on the selection."""
        editor.focus("c")
        editor.toggle_selection("a1")
        editor.toggle_selection("a2")

        assert editor.can_outdent()
        tree = editor.outdent()

        assert shape(tree)[:4] == [("a", 0), ("a1", 0), ("a1x", 1), ("a2", 0)]
        assert check_invariants(tree) == []

    def test_noop_queues_nothing(self, editor):
        """Test that an ineligible command changes nothing."""
        before = editor.tree

        assert editor.move_up("a") is before
        assert editor.outdent("b") is before
        assert not editor.outbox

    def test_move_down(self, editor):
        """Test moving a block past its next sibling."""
        tree = editor.move_down("b")

        assert tree.roots == ["a", "c", "b"]
        assert [op.kind for op in editor.outbox] == ["move_block", "move_block"]

    def test_collapse_refocuses_visible_ancestor(self, editor):
        """Test that a focused block hidden by collapse hands focus upward."""
        editor.focus("a1x", 3)

        editor.toggle_collapse("a")

        assert editor.tree.blocks["a"].collapsed
        assert editor.session.focused_block_id == "a"
        assert editor.session.consume_target_cursor() == 1

    def test_change_type(self, editor):
        """Test changing block types with a language."""
        tree = editor.change_type(BlockType.CODE, ["b", "c"], language="sql")

        assert tree.blocks["b"].language == "sql"
        assert tree.blocks["c"].block_type == BlockType.CODE

    def test_delete_focuses_previous_block(self, editor):
        """Test that focus lands at the end of the block before the deleted one."""
        editor.focus("a2")

        tree = editor.delete()

        assert "a2" not in tree
        assert editor.session.focused_block_id == "a1x"
        assert editor.session.consume_target_cursor() == 3

    def test_delete_selection(self, editor):
        """Test deleting a selection with subtrees."""
        editor.toggle_selection("a1")
        editor.toggle_selection("b")

        tree = editor.delete()

        assert set(tree.blocks) == {"a", "a2", "c"}
        assert not editor.session.has_selection()
        assert editor.session.focused_block_id == "a"
        assert [op.kind for op in editor.outbox] == ["delete_block", "delete_block", "move_block", "move_block"]

    def test_delete_first_block(self, make_editor):
        """Test deleting the only block leaves nothing focused."""
        editor = make_editor(("a", 0))
        editor.focus("a")

        assert len(editor.delete()) == 0
        assert editor.session.focused_block_id is None
        assert not editor.can_delete()

    def test_duplicate(self, editor):
        """Test duplicating the focused block."""
        editor.focus("b")

        (copy_id,) = editor.duplicate()

        assert editor.tree.roots == ["a", "b", copy_id, "c"]

    def test_add_block(self, editor):
        """Test inserting and focusing a new block."""
        new_id = editor.add_block(after_block_id="a2", content="new")

        assert editor.tree.blocks[new_id].parent_id == "a"
        assert editor.session.focused_block_id == new_id
        assert editor.outbox[-1].kind == "create_block"

    def test_add_block_unknown_anchor(self, editor):
        """Test that a missing anchor adds nothing."""
        assert editor.add_block(after_block_id="gone") is None
        assert len(editor.tree) == 6


class TestEnterAndBackspace:
    """Test split and merge through the keyboard handlers."""

    def test_enter_splits_bullet(self, make_editor):
        """Test that Enter in a bullet splits it and focuses the tail."""
        editor = make_editor(("a", 0, "hello"), ("b", 0))
        editor.focus("a")

        new_id = editor.handle_enter("a", 2)

        assert editor.tree.blocks["a"].content == "he"
        assert editor.tree.blocks[new_id].content == "llo"
        assert editor.tree.roots == ["a", new_id, "b"]
        assert editor.session.focused_block_id == new_id
        assert editor.session.consume_target_cursor() == 0

    def test_enter_splits_draft_content(self, make_editor):
        """Test that the split uses what was typed, not the stale tree."""
        editor = make_editor(("a", 0, "old"))
        editor.edit("a", "abcd")

        new_id = editor.handle_enter("a", 1)

        assert editor.tree.blocks[new_id].content == "bcd"

    def test_enter_in_code_block_inserts_newline(self, make_editor):
        """Test that code blocks get a newline instead of a split."""
        editor = make_editor(("a", 0, "x = 1"))
        editor.change_type(BlockType.CODE, "a")

        assert editor.handle_enter("a", 5) == "a"

        assert editor.content_of("a") == "x = 1\n"
        assert len(editor.tree) == 1
        assert editor.session.consume_target_cursor() == 6

    def test_backspace_at_start_merges(self, make_editor):
        """Test merging into the previous block with the caret at the join."""
        editor = make_editor(("a", 0, "hello"), ("b", 0, "world"))
        editor.focus("b", 0)

        assert editor.handle_backspace("b", 0) == "a"

        assert editor.tree.blocks["a"].content == "helloworld"
        assert "b" not in editor.tree
        assert editor.session.focused_block_id == "a"
        assert editor.session.consume_target_cursor() == 5
        assert editor.session.merging_block_id is None

    def test_backspace_inside_content(self, make_editor):
        """Test that backspace elsewhere is left to the text widget."""
        editor = make_editor(("a", 0), ("b", 0))

        assert editor.handle_backspace("b", 1) is None
        assert len(editor.tree) == 2

    def test_backspace_in_first_block(self, editor):
        """Test that the first block has nothing to merge into."""
        assert not editor.can_merge_with_previous("a")
        assert editor.handle_backspace("a", 0) is None


class TestClipboard:
    """Test copying blocks."""

    def test_copy_selection(self, editor):
        """Test copying the selection as indented text."""
        editor.toggle_selection("a")
        editor.toggle_selection("a1")

        assert editor.copy() == "A\n  A1"

    def test_copy_uses_indent_size(self, make_editor):
        """Test the configured indentation."""
        editor = make_editor(("a", 0), ("b", 1), indent_size=4)

        assert editor.copy(["a", "b"], bullets=True) == "- A\n    - B"


class TestSync:
    """Test draining queued persistence ops."""

    @pytest.mark.asyncio
    async def test_without_backend(self, editor):
        """Test that an in-memory editor simply drops its ops."""
        editor.commit("a", "x")

        assert await editor.sync()
        assert not editor.outbox

    @pytest.mark.asyncio
    async def test_ops_sent_in_order(self, make_editor, backend):
        """Test that ops reach the backend in the order they were queued."""
        editor = make_editor(("a", 0), ("b", 0), backend=backend)
        editor.commit("a", "x")
        editor.indent("b")

        assert await editor.sync()

        assert backend.calls == [("commit_content", "a", "x"), ("move_block", "b", "a", None)]
        assert not editor.outbox

    @pytest.mark.asyncio
    async def test_failed_op_stays_queued(self, make_editor, backend):
        """Test that a failed op is retried by the next sync."""
        editor = make_editor(("a", 0), ("b", 0), backend=backend)
        backend.fail_on.add("commit_content")
        editor.commit("a", "x")
        editor.indent("b")

        assert not await editor.sync()
        assert [op.kind for op in editor.outbox] == ["commit_content", "move_block"]
        assert backend.calls == []

        backend.fail_on.clear()
        assert await editor.sync()
        assert [call[0] for call in backend.calls] == ["commit_content", "move_block"]

    @pytest.mark.asyncio
    async def test_persistence_error_stays_queued(self, make_editor, backend):
        """Test that a raised PersistenceError keeps the op."""
        editor = make_editor(("a", 0), backend=backend)
        backend.raise_on.add("commit_content")
        editor.commit("a", "x")

        assert not await editor.sync()
        assert len(editor.outbox) == 1
        assert editor.tree.blocks["a"].content == "x"

    @pytest.mark.asyncio
    async def test_save_flushes_drafts(self, make_editor, backend):
        """Test that save commits pending drafts before syncing."""
        editor = make_editor(("a", 0), backend=backend)
        editor.edit("a", "typed")

        assert await editor.save()
        assert backend.calls == [("commit_content", "a", "typed")]

    def test_close(self, editor):
        """Test that closing commits drafts and resets the session."""
        editor.focus("a")
        editor.toggle_selection("b")
        editor.edit("a", "last words")

        editor.close()

        assert editor.tree.blocks["a"].content == "last words"
        assert editor.session.focused_block_id is None
        assert not editor.session.has_selection()
        assert not editor.drafts.pending_ids()
