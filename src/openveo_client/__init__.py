"""openveo_client -- Asynchronous client for the OpenVeo REST web service.

This package authenticates to a web service with OAuth2 client
credentials, queues HTTP(S) requests behind a shared access token and
transparently re-authenticates when the token expires.

Typical usage::

    from openveo_client import OpenVeoClient

    client = OpenVeoClient("https://openveo.example.com", client_id, client_secret)
    videos = await client.get("publish/videos")

The ``openveo-client`` command wraps the same client for use from a shell,
with connection profiles stored in the user's config directory.

Modules:
    client: Request queue coordinator and OpenVeo client.
    request: Abortable, re-executable HTTP(S) request.
    auth: Authentication plugin interface.
    models: Pydantic models shared across the package.
    config: XDG-aware profile and settings management.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting with Rich support.
    app: Typer application and CLI entry point.
"""

from openveo_client.client import OpenVeoClient, RestClient
from openveo_client.exceptions import (
    AuthenticationError,
    ClientError,
    RequestError,
)

__version__ = "1.0.0"

__all__ = [
    "AuthenticationError",
    "ClientError",
    "OpenVeoClient",
    "RequestError",
    "RestClient",
    "__version__",
]
