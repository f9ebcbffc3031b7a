"""Client module for openveo_client.

Provides the request queue coordinator and the OpenVeo web service client:

Classes:
    :class:`RestClient` -- client of any REST web service protected by an
        access token, parameterised by an
        :class:`~openveo_client.auth.base.AuthPlugin`.
    :class:`OpenVeoClient` -- :class:`RestClient` authenticating with OAuth2
        client credentials.

Every verb method is a coroutine returning the parsed JSON response with an
``httpCode`` key.

Example::

    from openveo_client.client import OpenVeoClient

    client = OpenVeoClient("https://openveo.example.com", client_id, client_secret)
    result = await client.get("publish/videos?page=1")
"""

from openveo_client.client.openveo_client import OpenVeoClient
from openveo_client.client.rest_client import RestClient

__all__ = ["RestClient", "OpenVeoClient"]
