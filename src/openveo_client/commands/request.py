"""Request commands -- call an end point of the web service.

Provides the ``get``, ``post``, ``put``, ``patch`` and ``delete`` commands.
Each resolves the active profile (see
:func:`~openveo_client.config.resolve_profile`), creates an
:class:`~openveo_client.client.OpenVeoClient`, sends one request and prints
the response: the HTTP status on stderr, the body on stdout.

Example::

    openveo-client get "publish/videos?limit=10"
    openveo-client post publish/videos --body '{"title": "Demo"}'
    openveo-client post publish/addVideo --file file=@demo.mp4 --body '{"info": {}}'
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer

from openveo_client.client import OpenVeoClient
from openveo_client.client.response import format_api_response
from openveo_client.config import resolve_credential, resolve_profile
from openveo_client.exceptions import InvalidArgumentError
from openveo_client.models import Profile
from openveo_client.output import debug


_ENDPOINT = typer.Argument(help="End point to reach, relative to the web service URL.")
_BODY = typer.Option(None, "--body", "-d", help="Request body, JSON or raw text.")
_HEADER = typer.Option(
    None, "--header", "-H", help="Extra header as 'Name: Value'. Repeatable."
)
_TIMEOUT = typer.Option(
    None, "--timeout", "-t", help="Execution timeout in seconds for this request."
)
_MULTIPART = typer.Option(
    False, "--multipart", help="Send the body as multipart/form-data fields."
)
_FILE = typer.Option(
    None,
    "--file",
    "-F",
    help="File field as 'name=@path' (implies --multipart). Repeatable.",
)


def create_client(profile: Profile) -> OpenVeoClient:
    """Create the client described by *profile*, resolving its credentials."""
    debug(f"Using profile '{profile.name}' ({profile.url})")
    return OpenVeoClient(
        profile.url,
        resolve_credential(profile.client_id_source),
        resolve_credential(profile.client_secret_source),
        profile.certificate,
        settings=profile.settings,
    )


def parse_headers(values: Optional[list[str]]) -> dict[str, str]:
    """Parse ``Name: Value`` strings into a header mapping.

    Raises:
        InvalidArgumentError: If a value has no colon or an empty name.
    """
    headers: dict[str, str] = {}
    for value in values or []:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise InvalidArgumentError(f"Invalid header (expected 'Name: Value'): {value}")
        headers[name.strip()] = content.strip()
    return headers


def parse_body(body: Optional[str]) -> Any:  # noqa: ANN401
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return body


def _multipart_body(body: Any, files: list[str]) -> dict[str, Any]:
    """Build multipart form fields from a JSON object body and ``name=@path`` files."""
    if body is None:
        fields: dict[str, Any] = {}
    elif isinstance(body, dict):
        fields = dict(body)
    else:
        raise InvalidArgumentError("Multipart body must be a JSON object")

    for value in files:
        name, sep, path = value.partition("=")
        if not sep or not name:
            raise InvalidArgumentError(f"Invalid file field (expected 'name=@path'): {value}")
        file_path = Path(path.removeprefix("@")).expanduser()
        if not file_path.is_file():
            raise InvalidArgumentError(f"File not found: {file_path}")
        fields[name] = (file_path.name, file_path.read_bytes())
    return fields


def _run(
    ctx: typer.Context,
    method: str,
    endpoint: str,
    body: Optional[str] = None,
    headers: Optional[list[str]] = None,
    timeout: Optional[float] = None,
    multipart: bool = False,
    files: Optional[list[str]] = None,
) -> None:
    """Send one request with the active profile and print its response."""
    obj = ctx.obj or {}
    profile = resolve_profile(obj.get("profile"), obj.get("url"))

    options: dict[str, Any] = {}
    extra_headers = parse_headers(headers)
    if extra_headers:
        options["headers"] = extra_headers

    payload = parse_body(body)
    if files:
        multipart = True
    if multipart:
        payload = _multipart_body(payload, files or [])

    client = create_client(profile)
    if method in ("get", "delete"):
        call = getattr(client, method)(endpoint, options, timeout)
    else:
        call = getattr(client, method)(endpoint, payload, options, timeout, multipart)

    format_api_response(asyncio.run(call))


def get_command(
    ctx: typer.Context,
    endpoint: str = _ENDPOINT,
    header: Optional[list[str]] = _HEADER,
    timeout: Optional[float] = _TIMEOUT,
) -> None:
    """Send a GET request."""
    _run(ctx, "get", endpoint, headers=header, timeout=timeout)


def post_command(
    ctx: typer.Context,
    endpoint: str = _ENDPOINT,
    body: Optional[str] = _BODY,
    header: Optional[list[str]] = _HEADER,
    timeout: Optional[float] = _TIMEOUT,
    multipart: bool = _MULTIPART,
    file: Optional[list[str]] = _FILE,
) -> None:
    """Send a POST request."""
    _run(ctx, "post", endpoint, body, header, timeout, multipart, file)


def put_command(
    ctx: typer.Context,
    endpoint: str = _ENDPOINT,
    body: Optional[str] = _BODY,
    header: Optional[list[str]] = _HEADER,
    timeout: Optional[float] = _TIMEOUT,
    multipart: bool = _MULTIPART,
    file: Optional[list[str]] = _FILE,
) -> None:
    """Send a PUT request."""
    _run(ctx, "put", endpoint, body, header, timeout, multipart, file)


def patch_command(
    ctx: typer.Context,
    endpoint: str = _ENDPOINT,
    body: Optional[str] = _BODY,
    header: Optional[list[str]] = _HEADER,
    timeout: Optional[float] = _TIMEOUT,
    multipart: bool = _MULTIPART,
    file: Optional[list[str]] = _FILE,
) -> None:
    """Send a PATCH request."""
    _run(ctx, "patch", endpoint, body, header, timeout, multipart, file)


def delete_command(
    ctx: typer.Context,
    endpoint: str = _ENDPOINT,
    header: Optional[list[str]] = _HEADER,
    timeout: Optional[float] = _TIMEOUT,
) -> None:
    """Send a DELETE request."""
    _run(ctx, "delete", endpoint, headers=header, timeout=timeout)
