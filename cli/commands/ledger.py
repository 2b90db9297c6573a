"""
Audit ledger commands: verify, show
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from kern.ledger import VIOLATION_OPERATION, load_ledger, verify_ledger
from kern.ledger.artifacts import LEDGER_FILENAME, default_audit_dir

app = typer.Typer()
console = Console()


def _default_ledger_path() -> str:
    return f"{default_audit_dir()}/{LEDGER_FILENAME}"


@app.command()
def verify(
    ledger_path: Optional[str] = typer.Option(
        None, "--ledger", "-l", help="Path to ledger file (default: <audit dir>/mneme_ledger.json)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Recompute every entry hash and check tick ordering.

    Exit code 0 when the ledger is intact, 1 when it was tampered with,
    2 when it cannot be read.

    Examples:
        kern ledger verify
        kern ledger verify --ledger audit/mneme_ledger.json --json
    """
    path = ledger_path or _default_ledger_path()
    try:
        entries = load_ledger(path)
        result = verify_ledger(entries)
    except FileNotFoundError:
        if json_output:
            print(json.dumps({"error": "Ledger file not found", "path": path}))
        else:
            console.print(f"[red]Error: Ledger file not found:[/red] {path}")
        raise typer.Exit(2)
    except Exception as e:
        if json_output:
            print(json.dumps({"error": str(e)}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
    elif result.valid:
        console.print(f"[green]Ledger intact:[/green] {result.checked} entries verified")
    else:
        console.print(f"[red]Ledger verification failed:[/red] {result.error}")
        console.print(f"  Entry: {result.mismatch_index}")
        console.print(f"  Expected: {result.expected}")
        console.print(f"  Actual: {result.actual}")

    if not result.valid:
        raise typer.Exit(1)


@app.command()
def show(
    ledger_path: Optional[str] = typer.Option(
        None, "--ledger", "-l", help="Path to ledger file (default: <audit dir>/mneme_ledger.json)"
    ),
    operation: Optional[str] = typer.Option(None, "--operation", "-o", help="Filter by operation"),
    violations_only: bool = typer.Option(False, "--violations", help="Only violation entries"),
    show_payload: bool = typer.Option(False, "--payload", help="Show full payloads"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Tabulate ledger entries.

    Examples:
        kern ledger show
        kern ledger show --violations --payload
        kern ledger show --operation STATE_MUTATOR --json
    """
    path = ledger_path or _default_ledger_path()
    try:
        entries = load_ledger(path)
    except FileNotFoundError:
        if json_output:
            print(json.dumps({"error": "Ledger file not found", "path": path}))
        else:
            console.print(f"[red]Error: Ledger file not found:[/red] {path}")
        raise typer.Exit(2)
    except Exception as e:
        if json_output:
            print(json.dumps({"error": str(e)}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if operation:
        entries = [e for e in entries if e.operation == operation]
    if violations_only:
        entries = [e for e in entries if e.operation == VIOLATION_OPERATION]

    if json_output:
        data = [e.to_dict() for e in entries]
        if not show_payload:
            for item in data:
                item["payload"] = "<hidden>"
        print(json.dumps({"entries": data, "count": len(data)}, indent=2))
        return

    if not entries:
        console.print("[yellow]No ledger entries match the filters[/yellow]")
        return

    table = Table(title=f"Ledger: {path}")
    table.add_column("Tick", style="cyan", justify="right")
    table.add_column("Operation", style="green")
    table.add_column("Timestamp")
    table.add_column("Hash (prefix)", style="dim")
    for entry in entries:
        op_style = "red" if entry.is_violation else "green"
        table.add_row(
            str(entry.tick),
            f"[{op_style}]{entry.operation}[/{op_style}]",
            entry.timestamp,
            entry.hash[:16],
        )
    console.print(table)

    if show_payload:
        for entry in entries:
            console.print(f"\n[bold cyan]Tick {entry.tick}[/bold cyan] {entry.operation}")
            console.print(Syntax(json.dumps(entry.payload, indent=2), "json", theme="monokai"))

    console.print(f"\n[bold]Total entries:[/bold] {len(entries)}")
