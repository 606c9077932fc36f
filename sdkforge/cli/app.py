"""Main Typer application: imports and registers all CLI commands.

Entry point: ``sdkforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from sdkforge.cli.commands.artifacts import artifacts_cmd
from sdkforge.cli.commands.generate import generate_cmd

app = typer.Typer(
    name="sdkforge",
    help="sdkforge: generate Swift SDK bundles for cross-compiling to Linux.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="generate", help="Generate a Swift SDK bundle.")(generate_cmd)
app.command(name="artifacts", help="Show the artifact set and its cache status.")(artifacts_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
