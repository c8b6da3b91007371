"""
CLI: ``bsonspine config``: configuration inspection.
"""

from __future__ import annotations

import typer

from bsonspine.cli.utils import console, output_table

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show current configuration."""
    from bsonspine.core.settings import get_settings

    settings = get_settings()

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    if format == "env":
        for key, value in sorted(settings.model_dump(mode="json").items()):
            console.print(f"BSONSPINE_{key.upper()}={value}")
        return

    output_table(
        "Settings",
        ["Setting", "Value"],
        [[key, value] for key, value in sorted(settings.model_dump(mode="json").items())],
    )
