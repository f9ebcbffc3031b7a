"""OAuth2 Client Credentials flow auth plugin.

This module provides :class:`OAuth2ClientCredentialsPlugin`, which
implements the ``oauth2_client_credentials`` auth type. It describes the
non-interactive Client Credentials grant (:rfc:`6749` section 4.4) as
expected by the OpenVeo web service:

- ``POST /token`` with ``Authorization: Basic base64(client_id:client_secret)``
  and the JSON body ``{"grant_type": "client_credentials"}``;
- ``Authorization: Bearer <access_token>`` on every other request.

The plugin only describes the exchange. Sending it, caching the token and
re-authenticating when the token expires is the job of
:class:`~openveo_client.client.RestClient`.

See Also:
    :class:`openveo_client.auth.base.AuthPlugin` for the base interface.
"""

from __future__ import annotations

import base64
from typing import Any, Optional

from openveo_client.auth.base import AuthPlugin
from openveo_client.exceptions import InvalidArgumentError

DEFAULT_TOKEN_PATH = "/token"


class OAuth2ClientCredentialsPlugin(AuthPlugin):
    """Authenticate via OAuth2 Client Credentials grant.

    Args:
        client_id: Application's client id.
        client_secret: Application's client secret.
        token_path: Path of the token endpoint on the web service.

    Raises:
        InvalidArgumentError: If *client_id* or *client_secret* is not a
            non-empty string.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_path: str = DEFAULT_TOKEN_PATH,
    ) -> None:
        if not client_id or not isinstance(client_id, str):
            raise InvalidArgumentError(f"Invalid client id : {client_id}")
        if not client_secret or not isinstance(client_secret, str):
            raise InvalidArgumentError(f"Invalid client secret : {client_secret}")

        self._client_id = client_id
        self._client_secret = client_secret
        self._token_path = token_path
        self._credentials = base64.b64encode(
            f"{client_id}:{client_secret}".encode("utf-8")
        ).decode("ascii")

    @property
    def auth_type(self) -> str:
        return "oauth2_client_credentials"

    @property
    def client_id(self) -> str:
        """Application client id."""
        return self._client_id

    @property
    def client_secret(self) -> str:
        """Application client secret."""
        return self._client_secret

    @property
    def credentials(self) -> str:
        """Encoded credentials ready for the Basic authorization header."""
        return self._credentials

    def authenticate_request(self) -> tuple[dict[str, Any], Any]:
        """Describe the token request of the client credentials grant.

        Returns:
            Options for ``POST <token_path>`` with the Basic authorization
            header, and the ``grant_type`` body.
        """
        options = {
            "method": "POST",
            "path": self._token_path,
            "headers": {
                "Authorization": f"Basic {self._credentials}",
                "Content-Type": "application/json",
            },
        }
        return options, {"grant_type": "client_credentials"}

    def get_authentication_headers(self, access_token: Optional[str]) -> dict[str, str]:
        """Return the Bearer authorization header for *access_token*."""
        return {"Authorization": f"Bearer {access_token}"}

    def __repr__(self) -> str:
        return f"<OAuth2ClientCredentialsPlugin client_id={self._client_id!r}>"
