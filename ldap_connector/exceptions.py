from __future__ import annotations


class ConnectorError(Exception):
    """Base class for every error raised by the connector."""


class ConfigError(ConnectorError, ValueError):
    """Configuration is contradictory, incomplete or points at unusable files."""


class DirectoryConnectionError(ConnectorError, ConnectionError):
    """The directory could not be reached or answered with a protocol failure.

    Shown to end users as "service unavailable"; it is never their fault.
    """


class NoMatchError(ConnectorError):
    """The user search returned no entry."""


AUTH_REJECTED_MESSAGE = "invalid credentials"


class AuthRejectedError(ConnectorError):
    """Bind with the user's credentials failed.

    The message never tells an unknown DN apart from a wrong password.
    """

    def __init__(self, message: str = AUTH_REJECTED_MESSAGE) -> None:
        super().__init__(message)
