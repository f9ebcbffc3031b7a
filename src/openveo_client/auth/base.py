"""Abstract base class for authentication plugins.

The request queue coordinator (:class:`~openveo_client.client.RestClient`)
does not know how the web service authenticates clients. It delegates
the scheme-specific decisions to an :class:`AuthPlugin`:

- which request exchanges the client identity for an access token
  (:meth:`~AuthPlugin.authenticate_request`);
- how the token is read from the authentication response
  (:meth:`~AuthPlugin.get_token`);
- which headers carry that token on every other request
  (:meth:`~AuthPlugin.get_authentication_headers`).

To support a new scheme, subclass :class:`AuthPlugin`, set the
:attr:`~AuthPlugin.auth_type` property and implement
:meth:`~AuthPlugin.authenticate_request`.

See Also:
    :mod:`openveo_client.plugins.oauth2_client_credentials` for the
    built-in OAuth2 client credentials plugin.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class AuthPlugin(ABC):
    """Abstract base class for authentication plugins.

    Every concrete scheme must provide:

    1. An :attr:`auth_type` property returning a unique string identifier
       (e.g. ``"oauth2_client_credentials"``).
    2. An :meth:`authenticate_request` implementation describing the call
       which returns ``{"access_token": ...}`` on success or
       ``{"error": ..., "error_description": ...}`` on failure.
    """

    @property
    @abstractmethod
    def auth_type(self) -> str:
        """Return the unique auth type identifier this plugin handles."""
        ...

    @abstractmethod
    def authenticate_request(self) -> tuple[dict[str, Any], Any]:
        """Describe the request exchanging the client identity for a token.

        The coordinator builds this request once, at construction, and
        reuses it for every authentication.

        Returns:
            A ``(options, body)`` tuple. *options* holds at least
            ``method``, ``path`` and ``headers``; *body* is the request
            body (serialised as JSON when it is not a string).
        """
        ...

    def get_token(self, result: dict[str, Any]) -> Optional[str]:
        """Read the access token from a successful authentication response.

        Args:
            result: The parsed authentication response.

        Returns:
            The access token, or ``None`` if the response holds none.
        """
        return result.get("access_token") or None

    def get_authentication_headers(self, access_token: Optional[str]) -> dict[str, str]:
        """Return the headers to add to every request sent with *access_token*.

        The default implementation adds nothing.

        Args:
            access_token: The access token currently held by the client.

        Returns:
            A mapping of header names to values.
        """
        return {}
