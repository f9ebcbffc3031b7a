"""Built-in CLI sub-commands for openveo_client.

* :mod:`~openveo_client.commands.request` -- ``get``, ``post``, ``put``,
  ``patch`` and ``delete`` commands calling the web service.
* :mod:`~openveo_client.commands.profile` -- manage connection profiles.

Request commands are plain callback functions registered directly on the
root app; ``profile`` is a :class:`typer.Typer` sub-application.
"""
