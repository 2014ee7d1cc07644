"""CivicLink custom exceptions."""


class CivicLinkError(Exception):
    """Base exception for CivicLink errors."""


class InvalidInputError(CivicLinkError):
    """Input rejected before reaching storage (e.g. an empty password)."""


class ConstraintViolationError(CivicLinkError):
    """A storage uniqueness constraint was violated."""


class StorageUnavailableError(CivicLinkError):
    """The database could not be reached or failed to execute a query."""


class MalformedRecordError(CivicLinkError):
    """A storage row is missing fields required to build a record."""


class ConfigurationError(CivicLinkError):
    """A configuration value is missing or invalid."""
