"""Custom exceptions for Blocksmith services."""


class PersistenceError(Exception):
    """Raised when a persistence backend cannot store a change.

    The editor keeps the failed operation queued so a later sync can
    retry it.
    """


class FileModifiedError(PersistenceError):
    """Raised when a file is modified externally before a write.

    Writing anyway would silently discard the external change.

    Attributes:
        path: Path to the file that was modified
        message: Human-readable error message
    """

    def __init__(self, path: str, message: str = "File was modified outside the editor"):
        """Initialize FileModifiedError.

        Args:
            path: Path to the file that was modified
            message: Human-readable error message
        """
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")
