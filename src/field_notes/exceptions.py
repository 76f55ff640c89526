"""Error taxonomy shared by the stores and the catalog service."""


class FieldNotesError(Exception):
    """Base class for every error raised by the persistence layer."""
    pass


class NotFound(FieldNotesError):
    """Raised when a referenced entry, media blob or voice recording does not exist."""
    pass


class InvalidArgument(FieldNotesError):
    """Raised when input fails validation or a database constraint rejects it."""
    pass


class StorageFailure(FieldNotesError):
    """Raised when the underlying storage medium fails (I/O error, locked or full disk)."""
    pass


class CorruptData(FieldNotesError):
    """Raised when persisted data cannot be decoded or references missing rows."""
    pass
