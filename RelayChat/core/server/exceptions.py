"""
Exceptions raised by the server-side authentication and storage layers.
"""


class RelayChatError(Exception):
    """Base exception for server errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class AuthError(RelayChatError):
    """Base exception for registration and login failures."""
    pass


class DuplicateUsername(AuthError):
    """Registration attempted with a username that already exists."""

    def __init__(self, username: str):
        super().__init__(f"Username '{username}' already exists", {"username": username})
        self.username = username


class UnknownUser(AuthError):
    """Login attempted for a username that was never registered."""

    def __init__(self, username: str):
        super().__init__("Incorrect username.", {"username": username})
        self.username = username


class BadPassword(AuthError):
    """Login attempted with a password that does not match the stored hash."""

    def __init__(self, username: str):
        super().__init__("Incorrect password.", {"username": username})
        self.username = username


class StoreUnavailable(RelayChatError):
    """Credential or session store could not be reached."""
    pass
