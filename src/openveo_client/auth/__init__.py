"""Authentication subsystem for openveo_client.

Exposes :class:`~openveo_client.auth.base.AuthPlugin`, the capability
interface the request queue coordinator relies on to obtain an access
token and attach it to outgoing requests.
"""

from openveo_client.auth.base import AuthPlugin

__all__ = ["AuthPlugin"]
