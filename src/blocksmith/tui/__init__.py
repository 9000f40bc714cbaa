"""Terminal user interface for editing outlines."""
