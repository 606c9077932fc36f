"""sdkforge CLI: Typer-based command-line interface.

Provides the ``sdkforge`` command with subcommands for generating a bundle
and inspecting the artifact cache.

All output uses Rich for formatted terminal display.
"""
