"""Typer application and CLI entry point for openveo_client.

This module wires together the top-level Typer application: the request
commands (``get``, ``post``, ``put``, ``patch``, ``delete``) which call the
OpenVeo web service through :class:`~openveo_client.client.OpenVeoClient`,
and the ``profile`` sub-command group which manages connection profiles.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~openveo_client.exceptions.ClientError` exits with the error's
``exit_code``; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`openveo_client.config`: Profile and settings resolution.
    :mod:`openveo_client.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from openveo_client import __version__
from openveo_client.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="openveo-client",
    help="Call the OpenVeo web service from the command line.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from openveo_client.commands.profile import profile_app  # noqa: E402
from openveo_client.commands.request import (  # noqa: E402
    delete_command,
    get_command,
    patch_command,
    post_command,
    put_command,
)

app.command("get")(get_command)
app.command("post")(post_command)
app.command("put")(put_command)
app.command("patch")(patch_command)
app.command("delete")(delete_command)
app.add_typer(profile_app, name="profile", help="Connection profile management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"openveo-client {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    url: Optional[str] = typer.Option(
        None, "--url", help="Web service URL, overrides the profile's."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show authentications and retries."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~openveo_client.output.OutputManager`
    from CLI flags, and stores the profile selection in the Typer context
    so that sub-commands can read it via ``ctx.obj``.
    """
    from openveo_client.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["url"] = url


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to disk and return the log file path."""
    from openveo_client.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``openveo-client`` console script.

    Unhandled :class:`~openveo_client.exceptions.ClientError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from openveo_client.exceptions import ClientError
        from openveo_client.output import error

        if isinstance(exc, ClientError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
