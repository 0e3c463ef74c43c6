class ArchboardError(Exception):
    """Base class for errors raised by the stores."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ArchboardError):
    """A referenced workspace or collection does not exist."""


class UnauthorizedError(ArchboardError):
    """The caller does not own the resource."""


class InvalidInputError(ArchboardError):
    """Input was rejected by a rule the schema layer cannot express."""


class StorageError(ArchboardError):
    """The backing store failed; the transaction was rolled back."""
