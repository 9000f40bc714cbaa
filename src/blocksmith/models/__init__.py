"""Pydantic models for Blocksmith."""

from blocksmith.models.config import Config, EditorConfig, PersistenceConfig

__all__ = ["Config", "EditorConfig", "PersistenceConfig"]
