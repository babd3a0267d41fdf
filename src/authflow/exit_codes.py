"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a failure category and is referenced by the
corresponding :class:`~authflow.exceptions.AuthflowError` subclass so that
shell wrappers can branch on ``$?`` without parsing stderr.

Example::

    $ authflow request /v1/profile --auth-mode user_level
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the session could not be refreshed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments (including an invalid URL)."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed and could not be recovered by a token refresh."""

EXIT_SERVER_ERROR = 5
"""The remote API answered with an error status."""

EXIT_CONNECTION_ERROR = 6
"""No network, no response, or a transport-level failure."""

EXIT_DECODE_ERROR = 7
"""A successful response body could not be decoded into the expected model."""
