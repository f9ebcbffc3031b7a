"""Canonical Pydantic models shared across all openveo_client modules.

The models fall into two groups:

**Runtime models** -- built by the client while it talks to the web service:
    :class:`EndpointTarget` (where the web service lives) and
    :class:`RequestOptions` (everything needed to send one HTTP call).

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`ClientSettings`, :class:`Profile` and :class:`GlobalConfig`.

All models use Pydantic v2. :class:`RequestOptions` and :class:`Profile`
accept extra keys, which are preserved in ``model_extra``.
"""

from __future__ import annotations

import ssl
from typing import Literal, Optional, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from openveo_client.exceptions import InvalidArgumentError


DEFAULT_PORTS = {"http": 80, "https": 443}


# --- Runtime models ---


class EndpointTarget(BaseModel):
    """Protocol, host, port and base path of the web service.

    Derived once from the configured service URL and never modified
    afterwards.

    Example::

        target = EndpointTarget.from_url("https://openveo.example.com:3001/api")
        assert target.port == 3001
        assert target.path == "/api"
    """

    model_config = ConfigDict(frozen=True)

    protocol: Literal["http", "https"]
    hostname: str
    port: int
    path: str = "/"

    @classmethod
    def from_url(cls, url: str) -> EndpointTarget:
        """Parse a web service URL.

        The protocol is ``https`` only when the URL says so explicitly,
        anything else falls back to ``http``. Without an explicit port the
        protocol's default port is used.

        Args:
            url: The complete URL of the web service.

        Returns:
            The parsed :class:`EndpointTarget`.

        Raises:
            InvalidArgumentError: If *url* is not a non-empty string with a
                host name and a valid port.
        """
        if not url or not isinstance(url, str):
            raise InvalidArgumentError(f"Invalid web service url : {url}")

        try:
            parts = urlsplit(url)
            protocol = "https" if parts.scheme == "https" else "http"
            port = parts.port or DEFAULT_PORTS[protocol]
        except ValueError as exc:
            raise InvalidArgumentError(f"Invalid web service url : {url}") from exc
        if not parts.hostname:
            raise InvalidArgumentError(f"Invalid web service url : {url}")

        return cls(
            protocol=protocol,
            hostname=parts.hostname,
            port=port,
            path=parts.path or "/",
        )


class RequestOptions(BaseModel):
    """Options of a single HTTP(S) call.

    Keys not declared here (``params``, ``cookies``, ...) are kept in
    ``model_extra`` and forwarded untouched to
    :meth:`httpx.AsyncClient.request`.
    """

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    method: str = "GET"
    path: str = "/"
    hostname: Optional[str] = None
    port: Optional[int] = None
    headers: dict[str, str] = Field(default_factory=dict)
    verify: Union[bool, ssl.SSLContext] = Field(
        default=True,
        description="TLS verification: True, False or a context trusting extra CAs",
    )


# --- Configuration models ---


class ClientSettings(BaseModel):
    """Tunables of the request queue coordinator.

    Timeouts are expressed in seconds. ``execution_timeout`` set to
    ``None`` or ``math.inf`` disables the execution timeout entirely.
    """

    execution_timeout: Optional[float] = Field(
        default=10.0, description="Maximum execution time of a request in seconds"
    )
    abort_timeout: float = Field(
        default=2.0, description="Maximum time to wait for a request to abort in seconds"
    )
    max_authentication_attempts: int = Field(
        default=1,
        ge=0,
        description="Re-authentications allowed per request when the token expired",
    )
    fail_on_http_error: bool = Field(
        default=True,
        description="Treat HTTP codes >= 400 as failures even without an error body",
    )
    production: bool = Field(
        default=True,
        description="Reject invalid TLS certificates (disabled outside production)",
    )


class Profile(BaseModel):
    """Connection profile stored as JSON under the ``profiles/`` config directory.

    Client id and secret are never stored directly: ``client_id_source`` and
    ``client_secret_source`` are credential source descriptors resolved by
    :func:`~openveo_client.config.resolve_credential` (``env:VAR``,
    ``file:/path`` or ``prompt``).

    See Also:
        :func:`~openveo_client.config.load_profile`: Deserialise a profile by name.
        :func:`~openveo_client.config.save_profile`: Persist a profile to disk.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    url: str = Field(description="Complete URL of the web service (with protocol and port)")
    client_id_source: str
    client_secret_source: str
    certificate: Optional[str] = Field(
        default=None, description="Path to the web service full chain certificate"
    )
    settings: ClientSettings = Field(default_factory=ClientSettings)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/openveo-client/config.json``."""

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
