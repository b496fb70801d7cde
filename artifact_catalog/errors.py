"""
Error types raised by the catalog service layer.
"""


class CatalogError(Exception):
    """Base class for catalog errors that map onto an HTTP status."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CatalogValidationError(CatalogError):
    """Raised when required input is missing or unusable, before any write."""

    status_code = 400


class NotFoundError(CatalogError):
    """Raised for ids or tokens that do not exist for the caller.

    Deliberately used both for "does not exist" and "owned by someone
    else" so responses never reveal whether a resource exists.
    """

    status_code = 404


class ConflictError(CatalogError):
    """Raised when a write collides with an existing unique key."""

    status_code = 409
