"""Command-line tools for the base station and the collector.

The Typer application lives in ``cli.app``; it is not re-exported here so
that ``cli.app`` keeps resolving to the module, which tests patch.
"""

__all__: list[str] = []
