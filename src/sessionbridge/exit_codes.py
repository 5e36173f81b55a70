"""Process exit codes.

Each :class:`~sessionbridge.exceptions.SessionBridgeError` subclass names
one of these as its ``exit_code``; commands use them directly for usage
errors. The values follow `clig.dev <https://clig.dev/>`_ conventions::

    $ sessionbridge login
    $ echo $?
    3
"""

EXIT_SUCCESS = 0

EXIT_GENERIC_FAILURE = 1
"""Anything without a more specific code, including configuration errors."""

EXIT_INVALID_USAGE = 2
"""Bad arguments: unknown config key, value of the wrong type."""

EXIT_AUTH_FAILURE = 3
"""No session came out of the OAuth flow."""

EXIT_CONNECTION_ERROR = 6
"""The provider could not be reached or answered with an error."""

EXIT_CANCELLED = 130
"""The user abandoned an interactive step or pressed Ctrl-C."""
