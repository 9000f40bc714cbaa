"""Services around the outline engine: command surface, persistence, export."""
