from typing import Optional


class FlashdeckError(Exception):
    """Base exception for flashdeck errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseError(FlashdeckError):
    """Base exception for database-related errors."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class CardOperationError(DatabaseError):
    """Raised for errors during deck and card operations."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass


class SessionRecordOperationError(DatabaseError):
    """Indicates an error while appending or reading session records."""

    pass


class DeckNotFoundError(DatabaseError):
    """Raised when a specified deck is not found."""

    pass


class LoadError(FlashdeckError):
    """Raised when the card set for a deck cannot be fetched."""

    pass


class MediaResolutionError(FlashdeckError):
    """Raised when a stored media key cannot be turned into a display URL."""

    pass


class SessionValidationError(FlashdeckError):
    """Raised when a session operation is called in a state that forbids it.

    This always points at a caller bug (e.g. answering a finished pass),
    never at bad user input.
    """

    pass


class SubmitError(FlashdeckError):
    """Raised when a session record could not be persisted.

    Recoverable: the session stays complete and may be submitted again.
    """

    pass


class DeckImportError(FlashdeckError):
    """Raised when a deck file cannot be read or validated."""

    pass
