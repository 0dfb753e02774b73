class DirectoryError(Exception):
    """Base class for errors raised by the directory services."""


class ValidationError(DirectoryError):
    """Missing or malformed input supplied by the caller."""


class NotFoundError(DirectoryError):
    """The requested place does not exist."""


class ExternalServiceError(DirectoryError):
    """A geocoding or place-search call failed at the transport or credential level."""


class PersistenceError(DirectoryError):
    """The place store could not be read or written."""
