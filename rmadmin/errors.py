"""Error taxonomy shared by the rmadmin client, stores and dispatcher."""

from typing import Optional


class AdminError(Exception):
    """Base class for every error raised by rmadmin."""


class ConfigError(AdminError):
    """Raised when the settings file or environment is invalid."""


class FormatError(AdminError, ValueError):
    """Raised on malformed label, node-label or labels-file input."""


class ArityError(AdminError):
    """Raised when a command gets the wrong number of arguments."""

    def __init__(self, command: str, expected: str, got: int) -> None:
        self.command = command
        self.expected = expected
        self.got = got
        super().__init__(f"expected {expected} argument(s), got {got}")


class UnknownCommandError(AdminError):
    """Raised when the command token is not recognized."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__("Unknown command")


class AdminConnectionError(AdminError, ConnectionError):
    """Raised when the admin endpoint cannot be reached at all.

    The request never left the client, so it is safe to apply the same
    change somewhere else.
    """

    def __init__(self, url: str, attempts: int, cause: Optional[Exception] = None) -> None:
        self.url = url
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Cannot reach admin service at {url} after {attempts} attempt(s): {cause}"
        )


class RemoteServiceError(AdminError):
    """Raised when the admin service received the request and rejected it."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}: {detail}")

    @property
    def first_line(self) -> str:
        lines = (self.detail or "").strip().splitlines()
        return lines[0] if lines else f"HTTP {self.status_code}"


class LocalStoreError(AdminError):
    """Raised when the standalone label store fails."""


class UnsupportedStoreError(LocalStoreError):
    """Raised when the configured store cannot recover on its own."""
