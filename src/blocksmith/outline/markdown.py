"""Logseq-style markdown codec for block trees.

Documents are indented bullets (2 spaces per level by default). Each
bullet may carry continuation lines and `key:: value` properties. Two
properties belong to the tree model and are lifted out of the content:

- id:: persistent block id
- collapsed:: true when the block's children are hidden

Code blocks are written as a bullet holding only a code fence opener
(three backticks and an optional language), fence blocks as a bullet
holding only ``///``; both are closed by the same marker on a
continuation line.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from blocksmith.outline.block import CODE_FENCE, FENCE_DELIMITER, Block, BlockType
from blocksmith.outline.tree import BlockTree, flatten, rebuild
from blocksmith.utils.ids import generate_deterministic_id
from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)

_PROPERTY = re.compile(r"^([\w-]+)::\s*(.*)$")
_MODEL_PROPERTIES = {"id", "collapsed"}
_CODE_OPENER = re.compile(r"^```([^`\s]*)$")


@dataclass
class _RawBlock:
    level: int
    lines: list[str]


@dataclass
class OutlineDocument:
    """Parsed outline document.

    Attributes:
        tree: Block tree
        indent_str: Indentation unit (detected from source, default "  ")
        frontmatter: Lines before the first bullet (page-level properties)
    """

    tree: BlockTree
    indent_str: str = "  "
    frontmatter: list[str] = field(default_factory=list)

    @classmethod
    def parse(cls, markdown: str) -> "OutlineDocument":
        """Parse outline markdown.

        Blocks without an id:: property get a deterministic id derived from
        their position and content, so parsing the same text twice yields
        the same ids.

        Args:
            markdown: Outline markdown

        Returns:
            Parsed OutlineDocument
        """
        if not markdown.strip():
            return cls(tree=BlockTree())

        lines = markdown.split("\n")
        indent_str = _detect_indentation(lines)
        frontmatter, raw_blocks = _split_blocks(lines, indent_str)

        blocks: list[Block] = []
        used_ids: set[str] = set()
        for position, raw in enumerate(raw_blocks):
            block = _build_block(raw, position)
            if block.id in used_ids:
                logger.warning("markdown_duplicate_block_id", block_id=block.id, position=position)
                block.id = generate_deterministic_id(f"{position}:duplicate:{block.id}")
            used_ids.add(block.id)
            blocks.append(block)

        tree = rebuild(blocks)
        logger.debug("markdown_parsed", blocks=len(tree), frontmatter_lines=len(frontmatter))
        return cls(tree=tree, indent_str=indent_str, frontmatter=frontmatter)

    def render(self, include_ids: bool = True) -> str:
        """Render the document back to outline markdown.

        Args:
            include_ids: Write id:: properties so ids survive a reload

        Returns:
            Rendered markdown
        """
        lines = list(self.frontmatter)
        lines.extend(render_blocks(self.tree, self.indent_str, include_ids))
        return "\n".join(lines)


def render_blocks(tree: BlockTree, indent_str: str = "  ", include_ids: bool = True) -> list[str]:
    """Render every block of tree as outline markdown lines.

    Content lines that would read back as structure (a closing marker inside
    a code or fence body, a bullet or model property in a bullet's
    continuation, a fence left open in a bullet) are escaped with one extra
    leading backslash, which parsing removes again.
    """
    lines: list[str] = []

    for block in flatten(tree):
        indent = indent_str * block.level
        continuation = indent + "  "
        content_lines = block.content.split("\n") if block.content else []

        if block.block_type in (BlockType.CODE, BlockType.FENCE):
            marker = CODE_FENCE if block.block_type == BlockType.CODE else FENCE_DELIMITER
            opener = f"{CODE_FENCE}{block.language or ''}" if marker == CODE_FENCE else marker
            lines.append(f"{indent}- {opener}")
            for line in content_lines:
                if _core(line).strip() == marker:
                    line = _escape(line)
                lines.append(f"{continuation}{line}")
            lines.append(f"{continuation}{marker}")
        else:
            first, rest = _escape_bullet_lines(content_lines or [""])
            lines.append(f"{indent}- {first}" if first else f"{indent}-")
            lines.extend(f"{continuation}{line}" for line in rest)

        if block.collapsed and block.children:
            lines.append(f"{continuation}collapsed:: true")
        if include_ids:
            lines.append(f"{continuation}id:: {block.id}")

    return lines


def _escape_bullet_lines(content_lines: list[str]) -> tuple[str, list[str]]:
    first = content_lines[0]
    if _opener_marker(_core(first)) is not None:
        first = _escape(first)

    rest = [
        _escape(line) if _backslashes(line) and _is_fence_line(_core(line)) else line
        for line in content_lines[1:]
    ]
    # Escaping an unclosed opener can expose a later opener, so repeat
    while True:
        states, unclosed = _scan_fences(rest)
        if unclosed is None:
            break
        rest[unclosed] = _escape(rest[unclosed])

    rest = [
        _escape(line) if state == "outside" and _is_structural(_core(line)) else line
        for line, state in zip(rest, states)
    ]
    return first, rest


def _is_bullet_line(line: str) -> bool:
    stripped = line.lstrip()
    return stripped == "-" or stripped.startswith("- ")


def _opener_marker(text: str) -> Optional[str]:
    """Closing marker for a line that opens a code or fence block, else None."""
    stripped = text.strip()
    if stripped == FENCE_DELIMITER:
        return FENCE_DELIMITER
    if _CODE_OPENER.match(stripped):
        return CODE_FENCE
    return None


def _is_fence_line(text: str) -> bool:
    """True for a line that opens a fence inside bullet content."""
    stripped = text.strip()
    if stripped == FENCE_DELIMITER:
        return True
    return stripped.startswith(CODE_FENCE) and "`" not in stripped[len(CODE_FENCE):]


def _is_structural(text: str) -> bool:
    return _is_bullet_line(text) or _model_property(text) is not None


def _scan_fences(lines: list[str]) -> tuple[list[str], Optional[int]]:
    """Classify bullet continuation lines by fence state.

    Returns:
        Tuple of (one of "open", "close", "inside", "outside" per line,
        index of the opener left unclosed at the end or None)
    """
    states: list[str] = []
    open_marker: Optional[str] = None
    opened_at: Optional[int] = None
    for index, text in enumerate(lines):
        if open_marker is not None:
            if text.strip() == open_marker:
                open_marker = None
                states.append("close")
            else:
                states.append("inside")
        elif _is_fence_line(text):
            open_marker = CODE_FENCE if text.strip().startswith(CODE_FENCE) else FENCE_DELIMITER
            opened_at = index
            states.append("open")
        else:
            states.append("outside")
    return states, opened_at if open_marker is not None else None


def _leading(text: str) -> str:
    return text[: len(text) - len(text.lstrip())]


def _backslashes(text: str) -> int:
    body = text.lstrip()
    return len(body) - len(body.lstrip("\\"))


def _core(text: str) -> str:
    """Text without leading whitespace and escaping backslashes."""
    return text.lstrip().lstrip("\\")


def _escape(text: str) -> str:
    leading = _leading(text)
    return f"{leading}\\{text[len(leading):]}"


def _unescape(text: str) -> str:
    if not _backslashes(text):
        return text
    leading = _leading(text)
    return leading + text[len(leading) + 1:]


def _split_blocks(lines: list[str], indent_str: str) -> tuple[list[str], list[_RawBlock]]:
    """Group lines into bullets with their continuation lines.

    Bullet-looking lines inside an open fence stay with the block unless
    they are indented less than its continuation lines.

    Returns:
        Tuple of (frontmatter_lines, raw_blocks in document order)
    """
    frontmatter: list[str] = []
    raw_blocks: list[_RawBlock] = []
    i = 0

    while i < len(lines):
        line = lines[i]
        if not _is_bullet_line(line):
            if not raw_blocks:
                frontmatter.append(line)
            i += 1
            continue

        leading = _leading(line)
        level = leading.count(indent_str)
        stripped = line.lstrip()
        first_line = "" if stripped == "-" else stripped[2:]
        block_lines = [first_line]

        base_indent = leading + "  "
        block_marker = _opener_marker(first_line)
        open_marker = block_marker
        j = i + 1
        while j < len(lines):
            next_line = lines[j]
            if _is_bullet_line(next_line):
                if open_marker is None or len(_leading(next_line)) < len(base_indent):
                    break
            if next_line.startswith(base_indent):
                text = next_line[len(base_indent):]
            else:
                text = next_line.lstrip()
            if open_marker is not None:
                if text.strip() == open_marker:
                    open_marker = None
            elif block_marker is None and _is_fence_line(text):
                open_marker = CODE_FENCE if text.strip().startswith(CODE_FENCE) else FENCE_DELIMITER
            block_lines.append(text)
            j += 1

        # Trailing blank lines belong to the gap between bullets
        while len(block_lines) > 1 and not block_lines[-1].strip():
            block_lines.pop()

        raw_blocks.append(_RawBlock(level=level, lines=block_lines))
        i = j

    return frontmatter, raw_blocks


def _build_block(raw: _RawBlock, position: int) -> Block:
    first = raw.lines[0]
    rest = raw.lines[1:]
    block_type = BlockType.BULLET
    language: Optional[str] = None
    marker = _opener_marker(first)

    if marker is not None:
        block_type = BlockType.CODE if marker == CODE_FENCE else BlockType.FENCE
        if block_type == BlockType.CODE:
            language = _CODE_OPENER.match(first.strip()).group(1) or None

        body: list[str] = []
        tail: list[str] = []
        closed = False
        for text in rest:
            if closed:
                tail.append(text)
            elif text.strip() == marker:
                closed = True
            elif _backslashes(text) and _core(text).strip() == marker:
                body.append(_unescape(text))
            else:
                body.append(text)
        content_lines = body
        property_lines = tail
    else:
        content_lines, property_lines = _bullet_lines(first, rest)

    properties: dict[str, str] = {}
    for text in property_lines:
        parsed = _model_property(text)
        if parsed is not None:
            properties[parsed[0]] = parsed[1]
        else:
            # Stray text after a closing marker
            content_lines.append(text)

    content = "\n".join(content_lines)
    block_id = properties.get("id") or generate_deterministic_id(f"{position}:{content}")

    return Block(
        id=block_id,
        content=content,
        level=raw.level,
        block_type=block_type,
        language=language,
        collapsed=properties.get("collapsed", "").lower() == "true",
    )


def _bullet_lines(first: str, rest: list[str]) -> tuple[list[str], list[str]]:
    """Separate a bullet's content lines from its model property lines."""
    if _backslashes(first) and _opener_marker(_core(first)) is not None:
        first = _unescape(first)
    content_lines = [first]
    property_lines: list[str] = []

    states, unclosed = _scan_fences(rest)
    for text, state in zip(rest, states):
        if state == "outside" and _model_property(text) is not None:
            property_lines.append(text)
        elif state == "outside" and _backslashes(text) and _is_structural(_core(text)):
            content_lines.append(_unescape(text))
        elif state in ("inside", "outside") and _backslashes(text) and _is_fence_line(_core(text)):
            content_lines.append(_unescape(text))
        else:
            content_lines.append(text)

    if unclosed is not None:
        # Properties written after a fence that never closed
        while len(content_lines) > 1 and _model_property(content_lines[-1]) is not None:
            property_lines.insert(0, content_lines.pop())

    return content_lines, property_lines


def _model_property(text: str) -> Optional[tuple[str, str]]:
    match = _PROPERTY.match(text.strip())
    if match and match.group(1) in _MODEL_PROPERTIES:
        return match.group(1), match.group(2).strip()
    return None


def _detect_indentation(lines: list[str]) -> str:
    """Detect indentation unit from the shallowest indented bullet.

    Falls back to 2 spaces if no indented bullets are found.
    """
    indents = []
    for line in lines:
        if not line.strip() or not _is_bullet_line(line):
            continue
        stripped = line.lstrip()
        if line != stripped:
            indents.append(line[: len(line) - len(stripped)])

    if not indents:
        return "  "
    return min(indents, key=len)
