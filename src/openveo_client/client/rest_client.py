"""Request queue coordinator for token-authenticated REST web services.

This module provides :class:`RestClient`, which owns the access token, the
set of pending requests and the re-authentication protocol. Callers only
use the verb methods (:meth:`~RestClient.get`, :meth:`~RestClient.post`,
...); authentication is transparent:

1. the verb method builds a :class:`~openveo_client.request.Request`, adds
   it to the pending set and starts a pass of
   :meth:`~RestClient.authenticate_and_execute`;
2. the pass authenticates first if no access token is held, then executes
   every pending request which is not already running, with the
   authentication headers of the plugin;
3. a response reporting an expired token clears the token and starts a new
   pass, up to ``max_authentication_attempts`` times per request;
4. the caller receives the parsed response, or a typed error.

Many requests can be in flight at once. They share a single
authentication: while one is running, new passes return immediately and
the running pass picks up the requests queued in the meantime.

Everything runs on one asyncio event loop. The pending set is only mutated
from callbacks of that loop, so no lock is needed.

See Also:
    :class:`~openveo_client.client.openveo_client.OpenVeoClient` for the
    ready-to-use OpenVeo web service client.
"""

from __future__ import annotations

import asyncio
import functools
import ssl
from collections.abc import Coroutine, Mapping
from pathlib import Path
from typing import Any, Optional

import httpx

from openveo_client.auth.base import AuthPlugin
from openveo_client.exceptions import (
    AbortError,
    AuthenticationError,
    ClientError,
    ConfigError,
    InvalidArgumentError,
    RequestAbortedError,
    RequestError,
)
from openveo_client.models import ClientSettings, EndpointTarget
from openveo_client.output import get_output
from openveo_client.request import HTTP_CODE_FIELD, Request

TOKEN_EXPIRED_DESCRIPTIONS = frozenset({
    "Token not found or expired",
    "Token already expired",
})
"""``error_description`` values meaning the access token must be renewed."""

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class RestClient:
    """Client of a REST web service protected by an access token.

    Requesting an end point without being authenticated automatically
    authenticates first. If the token expired, a new authentication is
    made and the request is sent again.

    The web service must answer with an ``error_description`` set to
    ``"Token not found or expired"`` or ``"Token already expired"`` when
    the token is not valid anymore.

    Args:
        web_service_url: The complete URL of the web service (with
            protocol and port).
        plugin: The :class:`~openveo_client.auth.base.AuthPlugin`
            describing how to obtain and send the access token.
        certificate: Optional path to the web service full chain
            certificate, trusted in addition to the system CAs.
        settings: Timeouts, retry and TLS policy. Defaults to
            :class:`~openveo_client.models.ClientSettings`.
        transport: Optional :mod:`httpx` transport used for every request
            instead of the network.

    Raises:
        InvalidArgumentError: If *web_service_url* is not a valid URL.

    Example::

        client = RestClient("https://openveo.example.com:443", plugin)
        videos = await client.get("publish/videos?limit=10")
    """

    def __init__(
        self,
        web_service_url: str,
        plugin: AuthPlugin,
        certificate: Optional[str] = None,
        *,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not isinstance(plugin, AuthPlugin):
            raise InvalidArgumentError(f"Invalid authentication plugin : {plugin}")

        self._target = EndpointTarget.from_url(web_service_url)
        self._plugin = plugin
        self._certificate = certificate
        self._settings = settings or ClientSettings()
        self._transport = transport

        self._access_token: Optional[str] = None
        self._queued_requests: dict[Request, None] = {}
        self._dispatched: set[Request] = set()
        self._authenticating = False
        self._tasks: set[asyncio.Future[Any]] = set()

        options, body = plugin.authenticate_request()
        self._authenticate_request = self.build_request(options, body)

    # ------------------------------------------------------------------ #
    # Read-only properties
    # ------------------------------------------------------------------ #

    @property
    def protocol(self) -> str:
        """Web service protocol, either ``"http"`` or ``"https"``."""
        return self._target.protocol

    @property
    def hostname(self) -> str:
        return self._target.hostname

    @property
    def port(self) -> int:
        return self._target.port

    @property
    def path(self) -> str:
        """Base path of the web service, prefixed to every end point."""
        return self._target.path

    @property
    def certificate(self) -> Optional[str]:
        return self._certificate

    @property
    def plugin(self) -> AuthPlugin:
        return self._plugin

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def access_token(self) -> Optional[str]:
        """Access token provided by the web service, ``None`` until authenticated."""
        return self._access_token

    @property
    def authenticate_request(self) -> Request:
        """The request used for every authentication, built once."""
        return self._authenticate_request

    @property
    def queued_requests(self) -> tuple[Request, ...]:
        """Snapshot of the pending requests, in insertion order."""
        return tuple(self._queued_requests)

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token)

    # ------------------------------------------------------------------ #
    # Verb methods
    # ------------------------------------------------------------------ #

    async def get(
        self,
        endpoint: str,
        options: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Execute a GET request.

        Args:
            endpoint: The end point to reach, with query parameters.
            options: Extra request options. ``headers`` are merged over the
                default headers, other keys are passed to :mod:`httpx`.
            timeout: Execution timeout in seconds for this request.

        Returns:
            The parsed response with an ``httpCode`` key.

        Raises:
            RequestError: If the web service answered with an error.
            AuthenticationError: If the client could not authenticate.
            TransportError: If the call itself failed.
        """
        return await self.execute_request("get", endpoint, options, timeout=timeout)

    async def post(
        self,
        endpoint: str,
        body: Any = None,
        options: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        multipart: bool = False,
    ) -> dict[str, Any]:
        """Execute a POST request.

        Args:
            endpoint: The end point to reach, with query parameters.
            body: The request body, a string or anything JSON serialisable.
                With *multipart*, a mapping of form fields.
            options: Extra request options, see :meth:`get`.
            timeout: Execution timeout in seconds for this request.
            multipart: Send *body* as ``multipart/form-data``.

        Returns:
            The parsed response with an ``httpCode`` key.
        """
        return await self.execute_request("post", endpoint, options, body, timeout, multipart)

    async def put(
        self,
        endpoint: str,
        body: Any = None,
        options: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        multipart: bool = False,
    ) -> dict[str, Any]:
        """Execute a PUT request. Arguments are the same as :meth:`post`."""
        return await self.execute_request("put", endpoint, options, body, timeout, multipart)

    async def patch(
        self,
        endpoint: str,
        body: Any = None,
        options: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        multipart: bool = False,
    ) -> dict[str, Any]:
        """Execute a PATCH request. Arguments are the same as :meth:`post`."""
        return await self.execute_request("patch", endpoint, options, body, timeout, multipart)

    async def delete(
        self,
        endpoint: str,
        options: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Execute a DELETE request. Arguments are the same as :meth:`get`."""
        return await self.execute_request("delete", endpoint, options, timeout=timeout)

    async def execute_request(
        self,
        method: str,
        endpoint: str,
        options: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        timeout: Optional[float] = None,
        multipart: bool = False,
    ) -> dict[str, Any]:
        """Queue a request and wait for its outcome.

        Cancelling the awaiting task removes the request from the queue and
        aborts it.

        Raises:
            InvalidArgumentError: If *endpoint* is not a string or *options*
                is not a mapping.
        """
        if not isinstance(endpoint, str):
            raise InvalidArgumentError(f"Invalid end point : {endpoint}")
        if options is not None and not isinstance(options, Mapping):
            raise InvalidArgumentError("Invalid request options")

        request_options = dict(options or {})
        headers = dict(DEFAULT_HEADERS)
        if multipart:
            del headers["Content-Type"]
        headers.update(request_options.get("headers") or {})
        request_options.update(
            method=method.upper(),
            path=self._build_path(endpoint),
            headers=headers,
        )

        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        request = self.build_request(request_options, body, timeout, multipart, future)
        self._queued_requests[request] = None
        self.authenticate_and_execute()

        try:
            return await future
        except asyncio.CancelledError:
            queued = self._queued_requests.pop(request, False) is None
            self._dispatched.discard(request)
            if queued or request.is_running:
                self._spawn(self._abort_quietly(request))
            raise

    # ------------------------------------------------------------------ #
    # Request building
    # ------------------------------------------------------------------ #

    def build_request(
        self,
        options: Mapping[str, Any],
        body: Any = None,
        timeout: Optional[float] = None,
        multipart: bool = False,
        future: Optional[asyncio.Future[dict[str, Any]]] = None,
    ) -> Request:
        """Build a request targeting the web service.

        The certificate, if any, is read again each time a request is built
        so that a renewed certificate file is picked up without recreating
        the client.

        Args:
            options: Request options (``method``, ``path``, ``headers``, and
                extra :mod:`httpx` arguments).
            body: The request body.
            timeout: Execution timeout in seconds, the client setting when
                ``None``.
            multipart: Send *body* as ``multipart/form-data``.
            future: The future to settle with the request's outcome.

        Returns:
            The request, ready to be executed.
        """
        merged = dict(options)
        merged.update(
            hostname=self._target.hostname,
            port=self._target.port,
            verify=self._build_verify(),
        )

        request = Request(
            self._target.protocol,
            merged,
            body,
            multipart=multipart,
            transport=self._transport,
        )
        request.execution_timeout = (
            timeout if timeout is not None else self._settings.execution_timeout
        )
        request.abort_timeout = self._settings.abort_timeout
        request.future = future
        return request

    def get_authentication_headers(self) -> dict[str, str]:
        """Return the headers carrying the current access token."""
        return self._plugin.get_authentication_headers(self._access_token)

    # ------------------------------------------------------------------ #
    # Authentication and queue processing
    # ------------------------------------------------------------------ #

    async def authenticate(self) -> None:
        """Authenticate to the web service unless an access token is held.

        Raises:
            AuthenticationError: If the web service refused the credentials
                or answered without an access token.
            TransportError: If the authentication call itself failed.
        """
        if self.is_authenticated:
            return

        get_output().debug(f"Authenticating to {self._target.hostname}")
        result = await self._authenticate_request.execute()
        if result.get("error"):
            raise AuthenticationError(
                result.get("error_description") or str(result["error"])
            )
        token = self._plugin.get_token(result)
        if not token:
            raise AuthenticationError("Invalid token")
        self._access_token = token

    def authenticate_and_execute(self) -> None:
        """Authenticate if needed, then execute every pending request.

        Safe to call any number of times: while an authentication is in
        flight, calls return immediately and the running pass executes the
        requests queued in the meantime.
        """
        if self._authenticating:
            return
        self._authenticating = True
        self._spawn(self._authenticate_and_execute())

    async def _authenticate_and_execute(self) -> None:
        try:
            await self.authenticate()
        except ClientError as exc:
            self._authenticating = False
            get_output().debug(f"Authentication failed: {exc}")
            self._reject_all(exc)
            return
        self._authenticating = False

        for request in list(self._queued_requests):
            if request in self._dispatched or self._authenticating:
                continue
            token = self._access_token
            self._dispatched.add(request)
            execution = request.execute(self.get_authentication_headers())
            execution.add_done_callback(
                functools.partial(self._on_request_done, request, token)
            )

    def _on_request_done(
        self,
        request: Request,
        token: Optional[str],
        execution: asyncio.Future[dict[str, Any]],
    ) -> None:
        """Interpret the outcome of one execution of a pending request."""
        self._dispatched.discard(request)
        if execution.cancelled():
            exc: Optional[BaseException] = RequestAbortedError("Request aborted")
        else:
            exc = execution.exception()

        # Removed by its caller or rejected while running.
        if request not in self._queued_requests:
            return
        if exc is not None:
            self._finish(request, error=exc)
            return

        result = execution.result()
        if not self._is_failure(result):
            self._finish(request, result=result)
            return

        http_code = result.get(HTTP_CODE_FIELD)
        if result.get("error_description") in TOKEN_EXPIRED_DESCRIPTIONS:
            # Another request may already have renewed the token.
            if self._access_token == token:
                self._access_token = None

            if request.attempts >= self._settings.max_authentication_attempts:
                self._finish(request, error=RequestError("Max attempts reached", http_code))
            else:
                request.attempts += 1
                get_output().debug(
                    f"Token expired, retrying {request.options.method} "
                    f"{request.options.path} (attempt {request.attempts})"
                )
                self.authenticate_and_execute()
            return

        self._finish(request, error=RequestError(get_error_message(result, request), http_code))

    def _is_failure(self, result: Mapping[str, Any]) -> bool:
        """Whether a parsed response is a logical failure."""
        if result.get("error"):
            return True
        http_code = result.get(HTTP_CODE_FIELD) or 0
        return self._settings.fail_on_http_error and http_code >= 400

    def _finish(
        self,
        request: Request,
        result: Optional[dict[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """Remove *request* from the queue and deliver its outcome."""
        self._queued_requests.pop(request, None)
        self._dispatched.discard(request)
        future = request.future
        if future is None or future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result or {})

    def _reject_all(self, error: BaseException) -> None:
        """Abort and reject every pending request with *error*, then clear the queue."""
        for request in list(self._queued_requests):
            self._spawn(self._abort_quietly(request))
            self._finish(request, error=error)
        self._queued_requests.clear()
        self._dispatched.clear()

    async def _abort_quietly(self, request: Request) -> None:
        try:
            await request.abort()
        except AbortError as exc:
            get_output().debug(f"{request!r}: {exc}")

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        """Run *coro* in the background, keeping a reference until it is done."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _build_path(self, endpoint: str) -> str:
        """Prefix *endpoint*, stripped of its leading slashes, with the base path."""
        base = self._target.path.rstrip("/")
        return f"{base}/{endpoint.lstrip('/')}"

    def _build_verify(self) -> bool | ssl.SSLContext:
        """TLS verification setting for a new request."""
        if self._target.protocol != "https":
            return True
        if not self._settings.production:
            return False
        if self._certificate:
            path = Path(self._certificate).expanduser()
            try:
                certificate = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise ConfigError(f"Cannot read certificate {path}: {exc}") from exc
            context = ssl.create_default_context()
            context.load_verify_locations(cadata=certificate)
            return context
        return True


def get_error_message(result: Mapping[str, Any], request: Request) -> str:
    """Build a human readable message for a failed response.

    Args:
        result: The parsed response, with its ``httpCode`` key.
        request: The request which produced *result*.

    Returns:
        The error message.
    """
    options = request.options
    http_code = result.get(HTTP_CODE_FIELD)

    if http_code == 403:
        return (
            "You don't have the authorization to access the endpoint "
            f'"{options.method} {options.path}"'
        )
    if http_code == 401:
        return "Authentication failed, verify your credentials"
    if http_code == 404:
        return f"Resource {options.path} not found"

    error = result.get("error")
    if isinstance(error, Mapping) and error.get("message"):
        return (
            f'Error : "{error["message"]}" '
            f"(code={error.get('code')}, module={error.get('module')})"
        )
    return "Unknown error"
