"""Exception hierarchy for openveo_client.

All exceptions inherit from :class:`ClientError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`openveo_client.exit_codes`. Library callers catch the specific
subclasses; the command line entry point in :func:`openveo_client.app.main`
catches ``ClientError`` and exits with the matching code.

Subclass hierarchy::

    ClientError (exit 1)
    +-- InvalidArgumentError    (exit 2, also a TypeError)
    +-- ConfigError             (exit 1)
    +-- TransportError          (exit 6)
    |   +-- ServerUnavailableError
    |   +-- InvalidResponseError
    |   +-- RequestAbortedError
    +-- AbortError              (exit 6)
    +-- RequestError            (exit 5)
        +-- AuthenticationError (exit 3)

Token expiry has no class of its own: the web service reports it through
an ``error_description`` value which the coordinator handles silently by
re-authenticating.
"""

from __future__ import annotations

from typing import Optional

from openveo_client.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_REQUEST_FAILURE,
)


class ClientError(Exception):
    """Base exception for all openveo_client errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidArgumentError(ClientError, TypeError):
    """Raised synchronously for invalid constructor or call arguments.

    Also a :class:`TypeError` so that callers validating argument types
    the usual way keep working.
    """

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ClientError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class TransportError(ClientError):
    """Raised when the HTTP exchange itself failed.

    Covers socket and protocol errors reported by :mod:`httpx`. Transport
    errors are delivered to the caller verbatim and never retried by the
    coordinator.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ServerUnavailableError(TransportError):
    """Raised when a request did not complete within its execution timeout."""


class InvalidResponseError(TransportError):
    """Raised when the response body is not valid JSON."""


class RequestAbortedError(TransportError):
    """Raised for an attempt cancelled by ``abort()`` or superseded by a new ``execute()``."""


class AbortError(ClientError):
    """Raised when a running request could not be cancelled within its abort timeout."""

    exit_code = EXIT_CONNECTION_ERROR


class RequestError(ClientError):
    """Raised when the web service answered a request with an error.

    Args:
        message: Human-readable error description.
        http_code: The HTTP status code of the failed response.
    """

    exit_code = EXIT_REQUEST_FAILURE

    def __init__(self, message: str, http_code: Optional[int] = None):
        super().__init__(message)
        self._http_code = http_code

    @property
    def http_code(self) -> Optional[int]:
        """The HTTP status code associated with this error."""
        return self._http_code


class AuthenticationError(RequestError):
    """Raised when the client failed to authenticate to the web service.

    Always carries HTTP code 401. An authentication failure rejects every
    request waiting in the client's queue, not only the one that
    triggered it.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str):
        super().__init__(message, 401)
