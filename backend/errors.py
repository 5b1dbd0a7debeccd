"""Typed errors shared by repositories, services and controllers."""


class DropError(Exception):
    """Base exception for all drop errors."""


class NotFound(DropError):
    """The code never existed, was deleted, expired or is exhausted."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Drop not found: {code}")


class Unauthorized(DropError):
    """The supplied admin secret is missing or wrong."""

    def __init__(self) -> None:
        super().__init__("Admin access required")


class StorageError(DropError):
    """Persistence failure in the database or on disk."""


class OperationTimeout(StorageError):
    """A storage call did not finish within the request deadline.

    The call may still complete in its worker thread after this is raised.
    """


class ValidationError(DropError):
    """Malformed TTL, download limit or payload."""
