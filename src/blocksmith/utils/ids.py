"""Id generation utilities for Blocksmith."""

import uuid
from typing import Optional


# Namespace UUID for Blocksmith (generated once, fixed)
# Deterministic ids are reproducible across runs for the same input
BLOCKSMITH_NAMESPACE = uuid.UUID("7d1c6a52-3f0e-4b8e-9a61-2c5f0e9b4d17")


def generate_block_id() -> str:
    """
    Generate a random UUID v4 for a new block.

    Returns:
        UUID string in standard format

    Example:
        >>> generate_block_id()
        "f47ac10b-58cc-4372-a567-0e02b2c3d479"
    """
    return str(uuid.uuid4())


def generate_deterministic_id(content: str, namespace: Optional[uuid.UUID] = None) -> str:
    """
    Generate deterministic UUID v5 from a content string.

    Used when importing markdown without id:: properties in a context
    that needs the same ids on every load (e.g. read-only CLI commands).

    Args:
        content: String to hash (typically position path plus content)
        namespace: UUID namespace (defaults to BLOCKSMITH_NAMESPACE)

    Returns:
        UUID string in standard format
    """
    if namespace is None:
        namespace = BLOCKSMITH_NAMESPACE

    return str(uuid.uuid5(namespace, content))
