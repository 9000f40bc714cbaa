"""Utility modules for Blocksmith."""
