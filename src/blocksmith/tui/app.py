"""Main Blocksmith TUI application."""

from pathlib import Path
from typing import Optional

from textual.app import App
from textual.binding import Binding
import structlog

from blocksmith.config import ConfigManager
from blocksmith.models.config import Config
from blocksmith.outline.markdown import OutlineDocument
from blocksmith.services.editor import OutlineEditor
from blocksmith.services.persistence import MarkdownMirror
from blocksmith.tui.screens import OutlineEditorScreen

logger = structlog.get_logger()


class OutlineApp(App):
    """Edit one outline markdown file, saving changes back as they happen."""

    CSS = """
    Screen {
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=True, priority=True),
    ]

    def __init__(
        self,
        document: OutlineDocument,
        path: Path,
        config: Optional[ConfigManager] = None,
    ):
        """Initialize the app.

        Args:
            document: Parsed document to edit
            path: Markdown file the document is saved to
            config: Loaded configuration (defaults when omitted)
        """
        super().__init__()
        self.path = path
        self.config_manager = config or ConfigManager(Config())

        include_ids = self.config_manager.persistence.include_block_ids
        self.mirror = MarkdownMirror(
            path,
            snapshot=lambda: document.render(include_ids=include_ids),
            atomic=self.config_manager.persistence.atomic_writes,
        )
        self.editor = OutlineEditor(document, backend=self.mirror, config=self.config_manager.editor)
        self.title = f"blocksmith - {path.name}"

        logger.info("app_initialized", path=str(path), blocks=len(document.tree))

    def on_mount(self) -> None:
        self.push_screen(OutlineEditorScreen(self.editor, name="outline"))

    async def action_quit(self) -> None:
        """Commit pending edits and save before exiting."""
        if isinstance(self.screen, OutlineEditorScreen):
            self.screen.stage_editor_text()
        if not await self.editor.save():
            logger.error("app_quit_save_failed", path=str(self.path), pending=len(self.editor.outbox))
        self.editor.close()
        self.exit()
