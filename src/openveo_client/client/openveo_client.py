"""Ready-to-use client of the OpenVeo web service.

:class:`OpenVeoClient` is a :class:`~openveo_client.client.rest_client.RestClient`
composed with the OAuth2 client credentials plugin, which is how OpenVeo
authenticates applications.
"""

from __future__ import annotations

from typing import Optional

import httpx

from openveo_client.client.rest_client import RestClient
from openveo_client.models import ClientSettings
from openveo_client.plugins.oauth2_client_credentials import OAuth2ClientCredentialsPlugin


class OpenVeoClient(RestClient):
    """Client of the OpenVeo web service.

    Authenticates with the client credentials of an OpenVeo application,
    then sends the returned access token as a Bearer token.

    Args:
        web_service_url: The complete URL of the OpenVeo web service (with
            protocol and port).
        client_id: The client id of the OpenVeo application.
        client_secret: The client secret of the OpenVeo application.
        certificate: Optional path to the web service full chain
            certificate.
        settings: Timeouts, retry and TLS policy.
        transport: Optional :mod:`httpx` transport used instead of the
            network.

    Raises:
        InvalidArgumentError: If *web_service_url*, *client_id* or
            *client_secret* is invalid.

    Example::

        client = OpenVeoClient("https://openveo.example.com", "id", "secret")
        videos = await client.get("publish/videos")
    """

    def __init__(
        self,
        web_service_url: str,
        client_id: str,
        client_secret: str,
        certificate: Optional[str] = None,
        *,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            web_service_url,
            OAuth2ClientCredentialsPlugin(client_id, client_secret),
            certificate,
            settings=settings,
            transport=transport,
        )

    @property
    def client_id(self) -> str:
        return self.plugin.client_id

    @property
    def client_secret(self) -> str:
        return self.plugin.client_secret

    @property
    def credentials(self) -> str:
        """Encoded ``client_id:client_secret`` used to authenticate."""
        return self.plugin.credentials

    @property
    def plugin(self) -> OAuth2ClientCredentialsPlugin:
        return self._plugin  # type: ignore[return-value]
