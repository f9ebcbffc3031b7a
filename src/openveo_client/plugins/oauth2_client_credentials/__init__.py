"""OAuth2 Client Credentials authentication plugin.

Implements the ``oauth2_client_credentials`` auth type used by the OpenVeo
web service: the client id and secret are sent as HTTP Basic credentials
to the token endpoint, and the returned access token is sent as a Bearer
token on every other request.

See Also:
    :class:`~openveo_client.plugins.oauth2_client_credentials.plugin.OAuth2ClientCredentialsPlugin`
    :mod:`openveo_client.auth.base` for the plugin interface contract.
"""

from openveo_client.plugins.oauth2_client_credentials.plugin import (
    OAuth2ClientCredentialsPlugin,
)

__all__ = ["OAuth2ClientCredentialsPlugin"]
