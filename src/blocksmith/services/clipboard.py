"""Plain-text export of selected blocks for the clipboard."""

from typing import Iterable

from blocksmith.outline.tree import BlockTree


def export_blocks(
    tree: BlockTree,
    block_ids: Iterable[str],
    indent: str = "  ",
    bullets: bool = False,
) -> str:
    """Render blocks as indented plain text, one block per line.

    Blocks are written in document order. Nesting is shown by leading
    indentation proportional to each block's depth relative to the
    shallowest exported block. Continuation lines of multi-line blocks
    keep the block's indentation.

    Args:
        tree: Tree holding the blocks
        block_ids: Blocks to export (unknown ids are ignored)
        indent: Indentation unit
        bullets: Prefix each block with "- " (outline markdown)

    Returns:
        Exported text without a trailing newline

    Example:
        >>> export_blocks(tree, ["a", "a1"])
        "Parent\\n  Child"
    """
    wanted = set(block_ids)
    ordered = [tree.blocks[block_id] for block_id in tree.ids() if block_id in wanted]
    if not ordered:
        return ""

    base = min(block.level for block in ordered)
    lines = []
    for block in ordered:
        prefix = indent * (block.level - base)
        content_lines = block.content.split("\n")
        if bullets:
            lines.append(f"{prefix}- {content_lines[0]}".rstrip())
            lines.extend(f"{prefix}  {line}" for line in content_lines[1:])
        else:
            lines.append(f"{prefix}{content_lines[0]}")
            lines.extend(f"{prefix}{line}" for line in content_lines[1:])

    return "\n".join(lines)


def copy_block_ids(block_ids: Iterable[str]) -> str:
    """Block ids one per line, for pasting as references."""
    return "\n".join(block_ids)
