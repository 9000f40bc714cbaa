"""Configuration models for Blocksmith."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from blocksmith.outline.block import MAX_LEVEL


class EditorConfig(BaseModel):
    """Editing behaviour."""

    indent_size: int = Field(
        default=2,
        ge=1,
        le=8,
        description="Spaces per nesting level for new documents and exports"
    )

    max_level: int = Field(
        default=MAX_LEVEL,
        ge=1,
        le=MAX_LEVEL,
        description="Deepest level indent is allowed to reach"
    )

    draft_flush_ms: int = Field(
        default=300,
        ge=0,
        description="Idle time after the last keystroke before a draft is committed"
    )

    model_config = {"frozen": True}


class PersistenceConfig(BaseModel):
    """How documents are written back to disk."""

    include_block_ids: bool = Field(
        default=True,
        description="Write id:: properties so block ids survive a reload"
    )

    atomic_writes: bool = Field(
        default=True,
        description="Write through a temporary file and rename"
    )

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for Blocksmith."""

    editor: EditorConfig = Field(default_factory=EditorConfig, description="Editing settings")
    persistence: PersistenceConfig = Field(
        default_factory=PersistenceConfig, description="Persistence settings"
    )

    @field_validator("editor", "persistence", mode="before")
    @classmethod
    def empty_section_means_defaults(cls, v):
        """Treat an empty YAML section (`editor:`) as all defaults."""
        return {} if v is None else v

    @classmethod
    def load(cls, path: Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            path: Path to config.yaml file

        Returns:
            Validated Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If YAML is invalid or validation fails
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {path}\n\n"
                f"Example:\n\n"
                f"editor:\n"
                f"  indent_size: 2\n"
                f"  draft_flush_ms: 300\n\n"
                f"persistence:\n"
                f"  include_block_ids: true\n"
            )

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping, got {type(data).__name__}")

        return cls(**data)

    model_config = {"frozen": True}
