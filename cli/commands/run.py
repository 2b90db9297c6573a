"""
Run command: execute a plan against an input record.
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from kern.core import LogLevel, RuntimeOptions, load_plan
from kern.interpreter import Engine
from kern.invariants import load_bindings
from kern.ledger import ArtifactStore
from kern.logging_config import setup_logging
from kern.metrics import prometheus

console = Console()


def _load_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def run_command(
    input_path: str = typer.Option(..., "--input", "-i", help="Path to input record (JSON)"),
    plan_path: str = typer.Option(..., "--plan", "-p", help="Path to plan document (JSON)"),
    bindings_path: Optional[str] = typer.Option(
        None, "--bindings", "-b", help="Path to invariant binding document (default: plan contracts)"
    ),
    halt_on_violation: bool = typer.Option(
        False, "--halt-on-violation", help="Stop after the first step that records a violation"
    ),
    collect_all_violations: bool = typer.Option(
        True,
        "--collect-all-violations/--no-collect-all-violations",
        help="Collect every violation (always on)",
    ),
    log_level: LogLevel = typer.Option(LogLevel.NORMAL, "--log-level", help="Per-step log detail"),
    audit_dir: Optional[str] = typer.Option(
        None, "--audit-dir", help="Directory for ledger and violation artifacts (default: $KERN_AUDIT_DIR or ./audit)"
    ),
    metrics_out: str = typer.Option(
        "metrics_snapshot.json", "--metrics-out", help="Path for the metrics snapshot"
    ),
    prom_textfile: Optional[str] = typer.Option(
        None, "--prom-textfile", help="Also write Prometheus metrics in textfile format"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Execute a plan against an input record.

    Writes the ledger and violation trail to the audit directory and the
    metrics snapshot beside them. Violations are reported, not fatal: the
    exit code is 0 whether or not any were detected.

    Examples:
        kern run --input applicant.json --plan plan.json
        kern run -i applicant.json -p plan.json --halt-on-violation
        kern run -i applicant.json -p plan.json --bindings invariants.json --json
    """
    # JSON mode keeps stdout parseable; only warnings reach the log stream
    setup_logging(level="WARNING" if json_output else None)

    try:
        initial = _load_json(input_path)
        plan = load_plan(plan_path)
        bindings = load_bindings(bindings_path) if bindings_path else None

        options = RuntimeOptions(
            halt_on_violation=halt_on_violation,
            collect_all_violations=collect_all_violations,
            log_level=log_level,
        )
        result = Engine(plan, bindings=bindings, options=options).execute(initial)
        rendered = result.to_dict()

        written = ArtifactStore(audit_dir, metrics_out).save(rendered)

        if prom_textfile:
            prometheus.record_run(result.metrics)
            prometheus.write_textfile(prom_textfile)
            written["prometheus"] = prom_textfile

    except FileNotFoundError as e:
        if json_output:
            print(json.dumps({"error": "File not found", "path": e.filename}))
        else:
            console.print(f"[red]Error: File not found:[/red] {e.filename}")
        raise typer.Exit(2)
    except Exception as e:
        if json_output:
            print(json.dumps({"error": str(e)}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    invariants = result.metrics["snapshot"]["invariants"]

    if json_output:
        print(
            json.dumps(
                {
                    "state": rendered["state"],
                    "proof": rendered["proof"],
                    "violationsByType": invariants["violationsByType"],
                    "haltedEarly": result.halted_early,
                    "artifacts": written,
                },
                indent=2,
            )
        )
        return

    console.print("\n[bold]Final State:[/bold]")
    console.print(Syntax(json.dumps(rendered["state"], indent=2), "json", theme="monokai"))

    proof = Table(title="Verification Proof", show_header=False)
    proof.add_column("Field", style="cyan")
    proof.add_column("Value")
    for key, value in rendered["proof"].items():
        proof.add_row(key, str(value))
    console.print(proof)

    console.print(f"\nMetrics snapshot written to {written['metrics']}")
    console.print(f"Violations audit written to {written['violations']}")
    if result.halted_early:
        console.print(f"[yellow]Halted early at tick {result.proof.ticks}[/yellow]")

    if invariants["violations"] > 0:
        console.print(f"\n[red]Detected {invariants['violations']} invariant violations:[/red]")
        by_type = Table(show_header=True)
        by_type.add_column("Type", style="yellow")
        by_type.add_column("Count", justify="right")
        for label, count in invariants["violationsByType"].items():
            by_type.add_row(label, str(count))
        console.print(by_type)
    else:
        console.print("\n[green]No invariant violations detected[/green]")
