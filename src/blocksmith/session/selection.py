"""Focus and selection state for one open document.

An EditorSession is created when a document is opened and reset when it
is closed. It is passed explicitly to whatever needs it; there is no
module-level instance. Every method is a synchronous, atomic update.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class EditorSession:
    """Focus, cursor intent and multi-selection state.

    Lifecycle:
    - Created at document open (everything empty)
    - Updated by navigation, clicks and shift-extend gestures
    - Pruned after structural mutations remove blocks
    - Reset at document close
    """

    focused_block_id: Optional[str] = None
    """Block that currently owns the caret."""

    target_cursor_position: Optional[int] = None
    """
    Pending caret placement for the newly focused block.

    Single-slot mailbox: set by set_focus(), read exactly once through
    consume_target_cursor(). A newer request overwrites an unconsumed one.
    """

    selected_block_ids: list[str] = field(default_factory=list)
    """Multi-selection in selection order (no duplicates)."""

    last_selected_block_id: Optional[str] = None
    """Most recently toggled block, whether it was added or removed."""

    selection_anchor_id: Optional[str] = None
    """Fixed pivot of a shift-extend gesture; moves only via set_anchor()."""

    merging_block_id: Optional[str] = None
    """Block being merged away (UI animation marker only)."""

    merging_target_block_id: Optional[str] = None
    """Block receiving the merged content (UI animation marker only)."""

    # Focus

    def set_focus(self, block_id: Optional[str], cursor_pos: Optional[int] = None) -> None:
        """Focus a block and post (or clear) a caret placement request."""
        self.focused_block_id = block_id
        self.target_cursor_position = cursor_pos
        logger.debug("focus_set", block_id=block_id, cursor_pos=cursor_pos)

    def clear_focus(self) -> None:
        """Drop focus and any pending caret request. Selection is untouched."""
        self.focused_block_id = None
        self.target_cursor_position = None

    def consume_target_cursor(self) -> Optional[int]:
        """Read the pending caret placement and clear it."""
        position = self.target_cursor_position
        self.target_cursor_position = None
        return position

    # Selection

    def is_selected(self, block_id: str) -> bool:
        return block_id in self.selected_block_ids

    def has_selection(self) -> bool:
        return bool(self.selected_block_ids)

    def is_batch(self) -> bool:
        """True when more than one block is selected."""
        return len(self.selected_block_ids) > 1

    def toggle_selection(self, block_id: str) -> None:
        if block_id in self.selected_block_ids:
            self.selected_block_ids.remove(block_id)
        else:
            self.selected_block_ids.append(block_id)
        self.last_selected_block_id = block_id

    def set_selection(self, block_ids: Iterable[str]) -> None:
        """Replace the selection, keeping first-seen order."""
        self.selected_block_ids = list(dict.fromkeys(block_ids))

    def select_range(self, from_id: str, to_id: str, visible_order: list[str]) -> None:
        """Select every visible block between two endpoints, inclusive.

        Endpoint order does not matter. If either id is not in
        visible_order (stale id, or hidden in a collapsed subtree) the
        selection is left as it was.

        Args:
            from_id: One endpoint
            to_id: Other endpoint
            visible_order: Visible block ids in document order
        """
        if from_id not in visible_order or to_id not in visible_order:
            logger.debug("select_range_invalid", from_id=from_id, to_id=to_id)
            return

        start = visible_order.index(from_id)
        end = visible_order.index(to_id)
        low, high = min(start, end), max(start, end)
        self.selected_block_ids = list(visible_order[low:high + 1])
        self.last_selected_block_id = to_id

    def extend_selection(self, to_id: str, visible_order: list[str]) -> None:
        """Shift-extend: pin the anchor on first use, then select anchor..to_id."""
        if self.selection_anchor_id is None:
            self.set_anchor(self.focused_block_id or to_id)
        self.select_range(self.selection_anchor_id, to_id, visible_order)

    def select_all(self, visible_order: list[str]) -> None:
        self.selected_block_ids = list(visible_order)
        if visible_order:
            self.last_selected_block_id = visible_order[-1]

    def set_anchor(self, block_id: Optional[str]) -> None:
        self.selection_anchor_id = block_id

    def clear_anchor(self) -> None:
        self.selection_anchor_id = None

    def clear_selection(self) -> None:
        """Clear selection, last-selected and anchor together."""
        self.selected_block_ids = []
        self.last_selected_block_id = None
        self.selection_anchor_id = None

    # Merge marker

    def begin_merge(self, block_id: str, target_block_id: str) -> None:
        self.merging_block_id = block_id
        self.merging_target_block_id = target_block_id

    def end_merge(self) -> None:
        self.merging_block_id = None
        self.merging_target_block_id = None

    # Lifecycle

    def prune(self, existing_ids: Iterable[str]) -> None:
        """Forget ids that no longer exist after a structural mutation."""
        existing = set(existing_ids)

        if self.focused_block_id is not None and self.focused_block_id not in existing:
            self.clear_focus()

        kept = [block_id for block_id in self.selected_block_ids if block_id in existing]
        if len(kept) != len(self.selected_block_ids):
            logger.debug("selection_pruned", removed=len(self.selected_block_ids) - len(kept))
        self.selected_block_ids = kept

        if self.last_selected_block_id not in existing:
            self.last_selected_block_id = None
        # An anchor without a selection is not a valid state
        if self.selection_anchor_id not in existing or not self.selected_block_ids:
            self.selection_anchor_id = None
        if self.merging_block_id not in existing or self.merging_target_block_id not in existing:
            self.end_merge()

    def reset(self) -> None:
        """Return to the freshly opened state."""
        self.clear_focus()
        self.clear_selection()
        self.end_merge()
