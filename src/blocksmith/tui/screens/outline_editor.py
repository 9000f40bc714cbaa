"""Outline editing screen.

The outline view is on top, the focused block's editor below it. In the
outline view the arrow keys move focus between blocks and single keys run
commands; in the editor, keys with outline meaning (Enter, Backspace at
the start, arrows at a block edge) are routed to the command surface.
Structural commands work from both.
"""

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.timer import Timer
from textual.widgets import Footer, Header, TextArea
import structlog

from blocksmith.outline.block import BlockType
from blocksmith.services.editor import OutlineEditor
from blocksmith.tui.widgets import BlockEditor, OutlineView

logger = structlog.get_logger()

TYPE_CYCLE = [BlockType.BULLET, BlockType.CODE, BlockType.FENCE]


class OutlineEditorScreen(Screen):
    """Edit one outline document."""

    CSS = """
    OutlineView {
        height: 1fr;
        border: solid white;
        padding: 0 1;
    }

    BlockEditor {
        height: 8;
        border: solid white;
    }
    """

    BINDINGS = [
        ("down", "focus_next_block", "Down"),
        ("up", "focus_previous_block", "Up"),
        ("j", "focus_next_block", "Down"),
        ("k", "focus_previous_block", "Up"),
        Binding("enter", "edit_block", "Edit"),
        Binding("escape", "leave_editor", "Back"),
        Binding("tab", "indent", "Indent", priority=True),
        Binding("shift+tab", "outdent", "Outdent", priority=True),
        Binding("alt+up", "move_up", "Move Up", priority=True),
        Binding("alt+down", "move_down", "Move Down", priority=True),
        Binding("ctrl+s", "save", "Save", priority=True),
        ("shift+down", "extend_selection_down", "Extend"),
        ("shift+up", "extend_selection_up", "Extend"),
        ("s", "toggle_selection", "Select"),
        ("A", "select_all", "Select All"),
        ("z", "toggle_collapse", "Collapse"),
        ("o", "add_block", "New Block"),
        ("d", "duplicate", "Duplicate"),
        ("delete", "delete", "Delete"),
        ("t", "cycle_type", "Block Type"),
        ("q", "app.quit", "Quit"),
    ]

    def __init__(self, editor: OutlineEditor, *args, **kwargs):
        """Initialize OutlineEditorScreen.

        Args:
            editor: Command surface for the open document
        """
        super().__init__(*args, **kwargs)
        self.editor = editor
        self._flush_timer: Optional[Timer] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield OutlineView()
        yield BlockEditor()
        yield Footer()

    def on_mount(self) -> None:
        order = self.editor.visible_order()
        if order and self.editor.session.focused_block_id is None:
            self.editor.focus(order[0])
        self._refresh()
        self.query_one(OutlineView).focus()
        logger.info("outline_screen_mounted", blocks=len(self.editor.tree))

    # Rendering

    def _refresh(self, reload_editor: bool = True) -> None:
        """Redraw the outline and (optionally) reload the focused block's editor."""
        self.query_one(OutlineView).show(self.editor.tree, self.editor.session)
        if not reload_editor:
            return

        block_editor = self.query_one(BlockEditor)
        focused = self.editor.session.focused_block_id
        offset = self.editor.session.consume_target_cursor()
        if offset is None and focused is not None and focused == block_editor.block_id:
            offset = block_editor.cursor_offset()

        content = self.editor.content_of(focused) if focused else None
        block_editor.load_block(focused, content or "", offset)

    def _changed(self, reload_editor: bool = True) -> None:
        """Redraw after a command and push queued changes to disk."""
        self._refresh(reload_editor)
        if self.editor.outbox:
            self.run_worker(self._sync(), group="persistence")

    async def _sync(self) -> None:
        if not await self.editor.sync():
            self.notify("Could not save changes (see log)", severity="error")

    def stage_editor_text(self) -> None:
        """Hand the editor's current text to the draft buffer."""
        block_editor = self.query_one(BlockEditor)
        block_id = block_editor.block_id
        if block_id is not None and self.editor.content_of(block_id) != block_editor.text:
            self.editor.edit(block_id, block_editor.text)

    def _editing(self) -> bool:
        return self.query_one(BlockEditor).has_focus

    # Text editing

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        block_editor = self.query_one(BlockEditor)
        if event.text_area is not block_editor or block_editor.block_id is None:
            return
        if block_editor.text == self.editor.content_of(block_editor.block_id):
            return

        self.editor.edit(block_editor.block_id, block_editor.text)
        if self._flush_timer is not None:
            self._flush_timer.stop()
        self._flush_timer = self.set_timer(self.editor.config.draft_flush_ms / 1000, self._flush_due)

    def _flush_due(self) -> None:
        self._flush_timer = None
        if not self.editor.flush_due():
            return

        # A code or fence opener converts the block and empties its text
        block_editor = self.query_one(BlockEditor)
        focused = self.editor.session.focused_block_id
        reload_editor = focused is not None and self.editor.content_of(focused) != block_editor.text
        self._changed(reload_editor)

    def on_block_editor_enter_pressed(self, message: BlockEditor.EnterPressed) -> None:
        self.stage_editor_text()
        self.editor.handle_enter(message.block_id, message.offset)
        self._changed()

    def on_block_editor_backspace_at_start(self, message: BlockEditor.BackspaceAtStart) -> None:
        self.stage_editor_text()
        if self.editor.handle_backspace(message.block_id, 0) is not None:
            self._changed()

    def on_block_editor_boundary(self, message: BlockEditor.Boundary) -> None:
        self.stage_editor_text()
        if self.editor.navigate(message.direction, message.offset, message.block_id) is not None:
            self._changed()

    # Focus movement

    def _step_focus(self, step: int) -> None:
        order = self.editor.visible_order()
        if not order:
            return
        focused = self.editor.session.focused_block_id
        if focused not in order:
            self.editor.focus(order[0])
        else:
            position = order.index(focused) + step
            if 0 <= position < len(order):
                self.editor.focus(order[position])
        self._changed()

    def action_focus_next_block(self) -> None:
        self._step_focus(1)

    def action_focus_previous_block(self) -> None:
        self._step_focus(-1)

    def action_edit_block(self) -> None:
        if self.editor.session.focused_block_id is None:
            self.editor.add_block()
            self._changed()
        self.query_one(BlockEditor).focus()

    def action_leave_editor(self) -> None:
        if self._editing():
            self.stage_editor_text()
            self.editor.flush()
            self._changed(reload_editor=False)
            self.query_one(OutlineView).focus()
        else:
            self.editor.clear_selection()
            self._refresh(reload_editor=False)

    # Selection

    def action_toggle_selection(self) -> None:
        focused = self.editor.session.focused_block_id
        if focused is not None:
            self.editor.toggle_selection(focused)
            self._refresh(reload_editor=False)

    def _extend(self, step: int) -> None:
        order = self.editor.visible_order()
        focused = self.editor.session.focused_block_id
        if focused not in order:
            return
        position = order.index(focused) + step
        if not 0 <= position < len(order):
            return
        self.editor.extend_selection(order[position])
        self.editor.focus(order[position])
        self._changed()

    def action_extend_selection_down(self) -> None:
        self._extend(1)

    def action_extend_selection_up(self) -> None:
        self._extend(-1)

    def action_select_all(self) -> None:
        self.editor.select_all()
        self._refresh(reload_editor=False)

    # Structural commands

    def action_indent(self) -> None:
        self.stage_editor_text()
        self.editor.indent()
        self._changed()

    def action_outdent(self) -> None:
        self.stage_editor_text()
        self.editor.outdent()
        self._changed()

    def action_move_up(self) -> None:
        self.stage_editor_text()
        self.editor.move_up()
        self._changed()

    def action_move_down(self) -> None:
        self.stage_editor_text()
        self.editor.move_down()
        self._changed()

    def action_toggle_collapse(self) -> None:
        self.stage_editor_text()
        self.editor.toggle_collapse()
        self._changed()

    def action_add_block(self) -> None:
        self.stage_editor_text()
        self.editor.add_block(after_block_id=self.editor.session.focused_block_id)
        self._changed()
        self.query_one(BlockEditor).focus()

    def action_duplicate(self) -> None:
        self.stage_editor_text()
        self.editor.duplicate(deep=True)
        self._changed()

    def action_delete(self) -> None:
        self.stage_editor_text()
        self.editor.delete()
        self._changed()

    def action_cycle_type(self) -> None:
        self.stage_editor_text()
        focused = self.editor.session.focused_block_id
        block = self.editor.tree.get(focused)
        if block is None:
            return
        next_type = TYPE_CYCLE[(TYPE_CYCLE.index(block.block_type) + 1) % len(TYPE_CYCLE)]
        self.editor.change_type(next_type)
        self._changed()

    async def action_save(self) -> None:
        self.stage_editor_text()
        saved = await self.editor.save()
        self._refresh(reload_editor=False)
        if saved:
            self.notify("Saved")
        else:
            self.notify("Could not save changes (see log)", severity="error")
