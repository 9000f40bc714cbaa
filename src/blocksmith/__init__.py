"""Blocksmith: a block-based outline editor engine."""

__version__ = "0.1.0"
