"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~openveo_client.exceptions.ClientError` subclass.
Shell scripts driving the ``openveo-client`` command can inspect the exit
code to tell a rejected credential from an unreachable server without
parsing stderr.

Example::

    $ openveo-client get videos
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the token endpoint refused the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The web service refused the client credentials."""

EXIT_REQUEST_FAILURE = 5
"""The web service answered an endpoint call with an error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, connection refused, unreadable response)."""
