#!/usr/bin/env python3
"""
kern CLI - Deterministic Rule Execution

Main entrypoint for the kern command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from cli.commands import ledger, run

# Initialize Typer app
app = typer.Typer(
    name="kern",
    help="Deterministic rule execution engine CLI",
    add_completion=False,
)

# Console for rich output
console = Console()

# Add command groups
app.add_typer(ledger.app, name="ledger", help="Audit ledger operations")

# Add standalone commands
app.command(name="run")(run.run_command)


@app.command()
def version():
    """Show version information."""
    from cli import __version__
    from kern.metrics import ENGINE_VERSION

    table = Table(show_header=False, box=None)
    table.add_row("[bold]kern CLI[/bold]", f"v{__version__}")
    table.add_row("Engine", ENGINE_VERSION)

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
