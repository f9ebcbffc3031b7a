"""Response formatting bridge -- maps parsed responses to the output system.

The client returns every response as a ``dict`` carrying the HTTP status
under ``httpCode``. :func:`format_api_response` moves that status to a
stderr status line and renders the rest of the body to stdout.

See Also:
    :mod:`openveo_client.output` -- the output manager that renders data.
"""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from openveo_client.output import get_output
from openveo_client.request import HTTP_CODE_FIELD


def format_api_response(result: Mapping[str, Any]) -> None:
    """Print a parsed response using the global output system.

    Writes the status line (e.g. ``HTTP 200 OK``) to stderr, then renders
    the response body to stdout.

    Args:
        result: A response returned by one of the client verb methods.
    """
    output = get_output()
    http_code, data = split_response(result)
    if http_code is not None:
        output.info(f"HTTP {http_code} {_reason_phrase(http_code)}".rstrip())
    if data is not None:
        output.format_response(data)


def split_response(result: Mapping[str, Any]) -> tuple[Any, Any]:
    """Separate the HTTP status from the response body.

    A body wrapped under ``data`` because it was not a JSON object is
    unwrapped again. An empty body yields ``None``.

    Args:
        result: A response returned by one of the client verb methods.

    Returns:
        A ``(http_code, data)`` tuple.
    """
    data = dict(result)
    http_code = data.pop(HTTP_CODE_FIELD, None)
    if list(data) == ["data"]:
        return http_code, data["data"]
    return http_code, data or None


def _reason_phrase(http_code: int) -> str:
    try:
        return HTTPStatus(http_code).phrase
    except ValueError:
        return ""
