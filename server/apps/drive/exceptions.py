"""Exceptions for drive app.

Messages are shown to clients as-is, so they never carry
absolute filesystem paths. Paths go to the logs only.
"""


class PathTraversalError(Exception):
    """Raised when a requested name would resolve outside its root."""

    def __init__(self, requested_name: str) -> None:
        """Initialize PathTraversalError.

        Args:
            requested_name: Name as supplied by the client.
        """
        self.requested_name = requested_name
        super().__init__(f'Invalid file name: {requested_name!r}')


class StoredFileNotFoundError(Exception):
    """Raised when a requested file is absent from the user's root."""

    def __init__(self, name: str) -> None:
        """Initialize StoredFileNotFoundError.

        Args:
            name: Requested file name.
        """
        self.name = name
        super().__init__('File not found')


class StorageIOError(Exception):
    """Raised when a disk operation fails (write, scan, delete)."""

    def __init__(self, operation: str) -> None:
        """Initialize StorageIOError.

        Args:
            operation: Short description of the failed operation.
        """
        self.operation = operation
        super().__init__(f'Storage operation failed: {operation}')


class TruncatedUploadError(StorageIOError):
    """Raised when fewer (or more) bytes arrived than were declared."""

    def __init__(self, name: str, declared_bytes: int, received_bytes: int) -> None:
        """Initialize TruncatedUploadError.

        Args:
            name: Declared file name.
            declared_bytes: Size announced by the client.
            received_bytes: Size actually written.
        """
        self.name = name
        self.declared_bytes = declared_bytes
        self.received_bytes = received_bytes
        super().__init__(
            f'upload of {name!r} incomplete '
            f'({received_bytes} of {declared_bytes} bytes)',
        )
