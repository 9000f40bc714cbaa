"""Automatic block type conversion triggered by typed content.

Typing ``///`` alone in a bullet turns it into a fence block, typing a
code fence opener (optionally with a language) turns it into a code block.
"""

import re
from dataclasses import dataclass
from typing import Optional

from blocksmith.outline.block import CODE_FENCE, FENCE_DELIMITER, Block, BlockType


_CODE_OPENER = re.compile(r"^```(\w*)$")


@dataclass(frozen=True)
class ConversionResult:
    """Type the block should be converted to."""

    block_type: BlockType
    language: Optional[str] = None


def should_convert_to_fence(block: Block, content: str) -> bool:
    return block.block_type != BlockType.FENCE and content.strip() == FENCE_DELIMITER


def should_convert_to_code(block: Block, content: str) -> bool:
    if block.block_type == BlockType.CODE:
        return False
    return content.strip().startswith(CODE_FENCE)


def extract_code_language(content: str) -> Optional[str]:
    """Language of a code fence opener ("" when none), or None if not an opener."""
    match = _CODE_OPENER.match(content.strip())
    return match.group(1) if match else None


def check_block_conversion(block: Block, content: str) -> Optional[ConversionResult]:
    """Decide whether new content should convert the block's type.

    Args:
        block: Block being edited
        content: Content about to be committed

    Returns:
        ConversionResult when a conversion applies, None otherwise
    """
    if should_convert_to_fence(block, content):
        return ConversionResult(block_type=BlockType.FENCE)

    if should_convert_to_code(block, content):
        language = extract_code_language(content)
        if language is not None:
            return ConversionResult(block_type=BlockType.CODE, language=language or None)

    return None
