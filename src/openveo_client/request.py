"""Abortable, re-executable wrapper around a single HTTP(S) call.

A :class:`Request` holds everything needed to send one call to the web
service (protocol, target, method, path, headers and body) and can be
executed several times: the queue coordinator re-executes the same
request after a token refresh. Each execution opens an
:class:`httpx.AsyncClient`, sends the call, buffers the whole response and
parses it as JSON.

Responses are never considered failures at this layer, whatever their
HTTP status: the parsed body is returned with an extra ``httpCode`` key and
the coordinator decides what an error is. Only transfer problems fail an
execution (see :class:`~openveo_client.exceptions.TransportError`).

See Also:
    :class:`~openveo_client.client.rest_client.RestClient` -- builds and
    drives requests.
"""

from __future__ import annotations

import asyncio
import json
import math
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from openveo_client.exceptions import (
    AbortError,
    InvalidArgumentError,
    InvalidResponseError,
    RequestAbortedError,
    ServerUnavailableError,
    TransportError,
)
from openveo_client.models import RequestOptions

DEFAULT_EXECUTION_TIMEOUT = 10.0
"""Default maximum execution time of a request, in seconds."""

DEFAULT_ABORT_TIMEOUT = 2.0
"""Default maximum time to wait for a request to abort, in seconds."""

HTTP_CODE_FIELD = "httpCode"
"""Key injected into every parsed response with the HTTP status code."""


class Request:
    """A REST request which can be executed and aborted.

    Executing a request while a previous execution is still running aborts
    the previous one first.

    Args:
        protocol: Either ``"http"`` or ``"https"``.
        options: The :class:`~openveo_client.models.RequestOptions` of the
            call, or a mapping validated into one.
        body: Optional request body. Anything but ``str`` or ``bytes`` is
            serialised as JSON, except for multipart requests whose body
            must be a mapping of form fields.
        multipart: Send *body* as ``multipart/form-data``.
        transport: Optional :class:`httpx.AsyncBaseTransport` used instead
            of the network (tests use :class:`httpx.MockTransport`).

    Raises:
        InvalidArgumentError: If *protocol*, *options* or a multipart
            *body* is invalid.

    Example::

        request = Request("https", {"hostname": "localhost", "port": 443, "path": "/videos"})
        result = await request.execute({"Authorization": "Bearer token"})
        print(result["httpCode"])
    """

    def __init__(
        self,
        protocol: str,
        options: RequestOptions | Mapping[str, Any],
        body: Any = None,
        multipart: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if protocol not in ("http", "https"):
            raise InvalidArgumentError("Invalid protocol")

        if isinstance(options, Mapping):
            try:
                options = RequestOptions.model_validate(dict(options))
            except ValueError as exc:
                raise InvalidArgumentError(f"Invalid request options: {exc}") from exc
        elif not isinstance(options, RequestOptions):
            raise InvalidArgumentError("Invalid request options")

        if multipart:
            if body is not None and not isinstance(body, Mapping):
                raise InvalidArgumentError("Multipart body must be a mapping of form fields")
        elif body is not None and not isinstance(body, (str, bytes)):
            body = json.dumps(body)

        self._protocol = protocol
        self._options = options
        self._body = body
        self._multipart = multipart
        self._transport = transport
        self._call: Optional[asyncio.Task[dict[str, Any]]] = None
        self._execution: Optional[asyncio.Task[dict[str, Any]]] = None
        self._call_owner: Optional[asyncio.Task[Any]] = None
        self._aborted_execution: Optional[asyncio.Task[Any]] = None

        self.execution_timeout: Optional[float] = DEFAULT_EXECUTION_TIMEOUT
        self.abort_timeout: float = DEFAULT_ABORT_TIMEOUT
        self.is_running = False
        self.attempts = 0

        # Settled by the owner of the request once its outcome is known.
        self.future: Optional[asyncio.Future[dict[str, Any]]] = None

    # ------------------------------------------------------------------ #
    # Read-only properties
    # ------------------------------------------------------------------ #

    @property
    def protocol(self) -> str:
        """Request protocol, either ``"http"`` or ``"https"``."""
        return self._protocol

    @property
    def options(self) -> RequestOptions:
        """Request options fixed at construction."""
        return self._options

    @property
    def body(self) -> Any:
        """The request body, serialised unless the request is multipart."""
        return self._body

    @property
    def multipart(self) -> bool:
        """Whether the body is sent as ``multipart/form-data``."""
        return self._multipart

    @property
    def url(self) -> str:
        """Absolute URL of the call."""
        hostname = self._options.hostname or "localhost"
        if ":" in hostname:
            hostname = f"[{hostname}]"
        port = f":{self._options.port}" if self._options.port else ""
        return f"{self._protocol}://{hostname}{port}{self._options.path}"

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def execute(
        self, headers: Optional[Mapping[str, str]] = None
    ) -> asyncio.Task[dict[str, Any]]:
        """Execute the request.

        The request is marked as running before this method returns. The
        returned task first aborts any execution still in flight, then
        sends the call.

        Headers fixed at construction take precedence over *headers*. The
        merge is computed for this execution only and is not kept, so the
        next execution starts again from the construction headers.

        Args:
            headers: Additional headers for this execution (typically the
                authentication headers).

        Returns:
            A task resolving with the parsed JSON response as a ``dict``,
            including an ``httpCode`` key with the HTTP status.

        Raises:
            InvalidArgumentError: If *headers* is not a mapping.
        """
        if headers is not None and not isinstance(headers, Mapping):
            raise InvalidArgumentError("Invalid request headers")

        merged_headers = {**(headers or {}), **self._options.headers}
        self.is_running = True
        self._execution = asyncio.ensure_future(self._execute(merged_headers))
        return self._execution

    async def abort(self) -> None:
        """Abort the request if it is running.

        An execution whose call is not sent yet stops before sending it. A
        call in flight is cancelled, waiting up to :attr:`abort_timeout`
        seconds for the cancellation to complete. Either way the execution
        fails with :class:`~openveo_client.exceptions.RequestAbortedError`.
        Does nothing when the request is not running.

        Raises:
            AbortError: If the call is still alive after :attr:`abort_timeout`.
        """
        if not self.is_running:
            return

        execution = self._execution
        if (
            execution is not None
            and not execution.done()
            and execution is not asyncio.current_task()
            and self._call_owner is not execution
        ):
            self._aborted_execution = execution

        call = self._call
        if call is not None and not call.done():
            call.cancel()
            done, _ = await asyncio.wait({call}, timeout=self.abort_timeout)
            if not done:
                raise AbortError("Request couldn't be aborted")
        self.is_running = False

    async def _execute(self, headers: dict[str, str]) -> dict[str, Any]:
        """Abort the previous call, send a new one and wait for it within the execution timeout."""
        current = asyncio.current_task()
        if self._execution is not current:
            raise RequestAbortedError("Request aborted")

        await self.abort()
        if self._aborted_execution is current:
            raise RequestAbortedError("Request aborted")

        self.is_running = True
        self._call_owner = current
        call = self._call = asyncio.ensure_future(self._send(headers))
        try:
            done, _ = await asyncio.wait({call}, timeout=self._timeout())
        except asyncio.CancelledError:
            call.cancel()
            if self._call is call:
                self.is_running = False
            raise

        if not done:
            try:
                await self.abort()
            except AbortError as exc:
                raise AbortError("Request can't be aborted") from exc
            raise ServerUnavailableError("Server unavailable")

        if self._call is call:
            self.is_running = False
        if call.cancelled():
            raise RequestAbortedError("Request aborted")
        return call.result()

    async def _send(self, headers: dict[str, str]) -> dict[str, Any]:
        """Send the HTTP call and parse its response."""
        kwargs: dict[str, Any] = dict(self._options.model_extra or {})
        if self._body is not None:
            if self._multipart:
                kwargs["files"] = _multipart_fields(self._body)
            elif self._body:
                kwargs["content"] = self._body

        try:
            async with httpx.AsyncClient(
                verify=self._options.verify,
                transport=self._transport,
                timeout=None,
            ) as client:
                response = await client.request(
                    self._options.method,
                    self.url,
                    headers=headers,
                    **kwargs,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        return parse_response(response)

    def _timeout(self) -> Optional[float]:
        """Execution timeout for :func:`asyncio.wait` (``None`` means no timeout)."""
        timeout = self.execution_timeout
        if timeout is None or math.isinf(timeout):
            return None
        return timeout

    def __repr__(self) -> str:
        return (
            f"<Request {self._options.method} {self._options.path} "
            f"running={self.is_running} attempts={self.attempts}>"
        )


def parse_response(response: httpx.Response) -> dict[str, Any]:
    """Parse a buffered response body as JSON and inject the HTTP status.

    An empty body is treated as an empty object. A JSON value which is not
    an object (a list for instance) is wrapped under a ``data`` key so that
    the status can be injected.

    Args:
        response: The :class:`httpx.Response` to parse.

    Returns:
        The parsed body with an extra ``httpCode`` key.

    Raises:
        InvalidResponseError: If the body is not valid JSON.
    """
    text = response.text
    try:
        data = json.loads(text) if text else {}
    except ValueError as exc:
        raise InvalidResponseError("Server error, response is not valid JSON") from exc

    if not isinstance(data, dict):
        data = {"data": data}
    data[HTTP_CODE_FIELD] = response.status_code
    return data


def _multipart_fields(body: Mapping[str, Any]) -> list[tuple[str, Any]]:
    """Convert form fields to the ``files`` argument of :mod:`httpx`.

    Tuples and file-like or ``bytes`` values are sent as files, everything
    else as plain form fields (non-string values serialised as JSON).
    """
    fields: list[tuple[str, Any]] = []
    for name, value in body.items():
        if isinstance(value, (tuple, bytes)) or hasattr(value, "read"):
            fields.append((name, value))
        elif isinstance(value, str):
            fields.append((name, (None, value)))
        else:
            fields.append((name, (None, json.dumps(value))))
    return fields
