"""Exception hierarchy for sessionbridge.

All exceptions inherit from :class:`SessionBridgeError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`sessionbridge.exit_codes`. Inside the background context these
errors never reach the caller: the orchestrator converts them into reply
messages. The CLI entry point catches the ones raised outside a message
exchange (configuration problems, mostly) and exits with their code.

Subclass hierarchy::

    SessionBridgeError (exit 1)
    +-- ConfigError                    (exit 1)
    +-- AuthError                      (exit 3)
    |   +-- MissingRedirectError
    |   +-- InvalidCallbackParamsError
    |   +-- ProviderAuthError
    |   |   +-- ProviderUnreachableError (exit 6)
    |   +-- HostFlowCancelledError     (exit 130)
    +-- ProfileFetchError              (exit 6)
"""

from sessionbridge.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
)


class SessionBridgeError(Exception):
    """Base exception for all sessionbridge errors.

    Args:
        message: Human-readable error description. This is the literal
            string a popup renders when the error reaches a reply.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(SessionBridgeError):
    """Raised for configuration problems (missing settings, invalid JSON)."""

    exit_code = EXIT_GENERIC_FAILURE


class AuthError(SessionBridgeError):
    """Raised when any step of the OAuth handshake fails."""

    exit_code = EXIT_AUTH_FAILURE


class MissingRedirectError(AuthError):
    """Raised when the interactive flow produced no redirect URL."""


class InvalidCallbackParamsError(AuthError):
    """Raised when the redirect URL fragment holds no usable parameters."""


class ProviderAuthError(AuthError):
    """Raised when the provider rejects the authorization or token exchange."""


class ProviderUnreachableError(ProviderAuthError):
    """Raised when the token endpoint cannot be reached or fails server-side.

    Unlike a rejected grant, this says nothing about the stored tokens.
    """

    exit_code = EXIT_CONNECTION_ERROR


class HostFlowCancelledError(AuthError):
    """Raised when the user abandons the interactive authentication flow."""

    exit_code = EXIT_CANCELLED


class ProfileFetchError(SessionBridgeError):
    """Raised when the profile of an authenticated account cannot be fetched."""

    exit_code = EXIT_CONNECTION_ERROR
