"""CLI entry point for Blocksmith."""

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.tree import Tree

from blocksmith import __version__
from blocksmith.config import ConfigManager
from blocksmith.outline.block import BlockType
from blocksmith.outline.markdown import OutlineDocument
from blocksmith.outline.tree import BlockTree
from blocksmith.services.clipboard import export_blocks
from blocksmith.services.editor import OutlineEditor
from blocksmith.services.exceptions import FileModifiedError
from blocksmith.services.persistence import MarkdownMirror
from blocksmith.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)
console = Console()

OPERATIONS = [
    "indent",
    "outdent",
    "move-up",
    "move-down",
    "toggle-collapse",
    "delete",
    "duplicate",
    "merge",
    "split",
    "to-bullet",
    "to-code",
    "to-fence",
]


def load_config() -> ConfigManager:
    """
    Load configuration from ~/.config/blocksmith/config.yaml (or defaults).

    Raises:
        click.ClickException: If the config file is invalid
    """
    try:
        return ConfigManager.load_default()
    except ValueError as e:
        raise click.ClickException(str(e))


def load_document(path: Path) -> OutlineDocument:
    """
    Read and parse an outline markdown file.

    Raises:
        click.ClickException: If the file can't be read
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.error("document_not_found", path=str(path))
        raise click.ClickException(f"File not found: {path}")
    except OSError as e:
        logger.error("document_read_error", path=str(path), error=str(e))
        raise click.ClickException(f"Cannot read {path}: {e}")

    document = OutlineDocument.parse(text)
    logger.info("document_loaded", path=str(path), blocks=len(document.tree))
    return document


def build_rich_tree(tree: BlockTree, title: str, show_ids: bool = False) -> Tree:
    """Render a block tree as a rich Tree (collapsed children are elided)."""
    root = Tree(f"[bold]{title}[/bold]")

    def label(block_id: str) -> str:
        block = tree.blocks[block_id]
        text = block.content.split("\n")[0] if block.content else "[dim](empty)[/dim]"
        if block.block_type == BlockType.CODE:
            text = f"[cyan]```{block.language or ''}[/cyan] {text}"
        elif block.block_type == BlockType.FENCE:
            text = f"[magenta]///[/magenta] {text}"
        if block.collapsed and block.children:
            text = f"{text} [yellow](+{len(block.children)})[/yellow]"
        if show_ids:
            text = f"{text} [dim]{block.id}[/dim]"
        return text

    def add(node: Tree, block_id: str) -> None:
        child = node.add(label(block_id))
        block = tree.blocks[block_id]
        if not block.collapsed:
            for child_id in block.children:
                add(child, child_id)

    for root_id in tree.roots:
        add(root, root_id)
    return root


def run_operation(editor: OutlineEditor, operation: str, block_id: str, offset: int | None) -> bool:
    """Run one named command against a block; returns True if the tree changed."""
    before = editor.tree

    if operation == "indent":
        editor.indent(block_id)
    elif operation == "outdent":
        editor.outdent(block_id)
    elif operation == "move-up":
        editor.move_up(block_id)
    elif operation == "move-down":
        editor.move_down(block_id)
    elif operation == "toggle-collapse":
        editor.toggle_collapse(block_id)
    elif operation == "delete":
        editor.delete(block_id)
    elif operation == "duplicate":
        editor.duplicate(block_id, deep=True)
    elif operation == "merge":
        editor.merge_with_previous(block_id)
    elif operation == "split":
        editor.split_at(block_id, offset)
    elif operation == "to-bullet":
        editor.change_type(BlockType.BULLET, block_id)
    elif operation == "to-code":
        editor.change_type(BlockType.CODE, block_id)
    elif operation == "to-fence":
        editor.change_type(BlockType.FENCE, block_id)
    else:
        raise click.BadParameter(f"Unknown operation: {operation}")

    return editor.tree is not before


@click.group()
@click.version_option(version=__version__, prog_name="blocksmith")
def cli():
    """Blocksmith: edit Logseq-style block outlines."""
    configure_logging()


@cli.command()
@click.argument("file", type=click.Path(path_type=Path))
@click.option("--ids", "show_ids", is_flag=True, help="Show block ids next to each block")
def show(file: Path, show_ids: bool):
    """
    Print the outline of FILE as a tree.

    Examples:
        blocksmith show notes.md
        blocksmith show notes.md --ids
    """
    document = load_document(file)
    if not document.tree.roots:
        click.echo("(empty outline)")
        return
    console.print(build_rich_tree(document.tree, file.name, show_ids=show_ids))


@cli.command()
@click.argument("file", type=click.Path(path_type=Path))
@click.option("--id", "block_ids", multiple=True, help="Block to export (repeatable; default: all)")
@click.option("--bullets", is_flag=True, help="Prefix blocks with '- '")
def export(file: Path, block_ids: tuple[str, ...], bullets: bool):
    """
    Export blocks of FILE as indented plain text.

    Examples:
        blocksmith export notes.md
        blocksmith export notes.md --id 6f1c... --bullets
    """
    config = load_config()
    document = load_document(file)

    ids = list(block_ids) or document.tree.ids()
    missing = [block_id for block_id in ids if block_id not in document.tree]
    if missing:
        raise click.ClickException(f"Unknown block id(s): {', '.join(missing)}")

    click.echo(export_blocks(document.tree, ids, indent=" " * config.editor.indent_size, bullets=bullets))


@cli.command(name="apply")
@click.argument("file", type=click.Path(path_type=Path))
@click.argument("operation", type=click.Choice(OPERATIONS))
@click.argument("block_id")
@click.option("--offset", type=int, default=None, help="Character offset for split (default: end)")
def apply_command(file: Path, operation: str, block_id: str, offset: int | None):
    """
    Apply an editing OPERATION to BLOCK_ID and save FILE.

    Block ids are shown by `blocksmith show FILE --ids`.

    Examples:
        blocksmith apply notes.md indent 6f1c...
        blocksmith apply notes.md split 6f1c... --offset 5
    """
    logger.info("apply_command_started", path=str(file), operation=operation, block_id=block_id)

    config = load_config()
    document = load_document(file)
    if block_id not in document.tree:
        raise click.ClickException(f"Block not found: {block_id}")

    include_ids = config.persistence.include_block_ids
    mirror = MarkdownMirror(
        file,
        snapshot=lambda: document.render(include_ids=include_ids),
        atomic=config.persistence.atomic_writes,
    )
    editor = OutlineEditor(document, backend=mirror, config=config.editor)

    if not run_operation(editor, operation, block_id, offset):
        click.echo(f"No change: {operation} is not possible for this block")
        return

    if not asyncio.run(editor.sync()):
        if mirror.is_modified():
            raise click.ClickException(str(FileModifiedError(str(file))))
        raise click.ClickException(f"Failed to save {file}")

    logger.info("apply_command_completed", operation=operation, writes=mirror.writes)
    click.echo(f"Applied {operation} to {block_id}")


@cli.command()
@click.argument("file", type=click.Path(path_type=Path))
def edit(file: Path):
    """
    Open FILE in the interactive outline editor.

    A missing file is created on first save.
    """
    from blocksmith.tui.app import OutlineApp

    config = load_config()
    document = load_document(file) if file.exists() else OutlineDocument.parse("")

    logger.info("launching_tui", path=str(file), blocks=len(document.tree))
    app = OutlineApp(document=document, path=file, config=config)
    app.run()
    logger.info("edit_command_completed")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
