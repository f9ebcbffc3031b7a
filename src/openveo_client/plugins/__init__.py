"""Built-in authentication plugins.

Each plugin lives in its own sub-package and implements
:class:`~openveo_client.auth.base.AuthPlugin`.
"""

from openveo_client.plugins.oauth2_client_credentials import (
    OAuth2ClientCredentialsPlugin,
)

__all__ = ["OAuth2ClientCredentialsPlugin"]
