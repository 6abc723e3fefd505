"""Error kinds shared by the registry server and its clients."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Normalized failure categories for remote registry operations."""

    VALIDATION = "validation"
    DUPLICATE_KEY = "duplicate_key"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    TRANSPORT = "transport"


class RegistryError(Exception):
    """A failed registry operation, already normalized to an ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def as_detail(self) -> dict[str, str]:
        """Return the error as an HTTP error detail payload."""
        return {"kind": self.kind.value, "message": self.message}
