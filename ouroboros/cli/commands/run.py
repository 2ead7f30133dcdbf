"""ouroboros run — Execute a request from the command line."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

_ACTOR_COLOR = {
    "Orchestrator": "magenta",
    "Architect": "cyan",
    "Engineer": "yellow",
    "System": "dim",
}
_OUTCOME_COLOR = {
    "completed": "green",
    "busy": "yellow",
    "not_configured": "red",
    "empty": "dim",
}


def _print_log(entries) -> None:
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold dim", padding=(0, 1))
    table.add_column("Actor", width=13)
    table.add_column("Message")
    for entry in entries:
        color = _ACTOR_COLOR.get(entry.actor.value, "white")
        table.add_row(f"[{color}]{entry.actor.value}[/{color}]", entry.message)
    console.print(Panel(table, title="[bold]Activity Log[/bold]", border_style="dim"))


def _print_widgets(workspace) -> None:
    table = Table(box=box.ROUNDED, header_style="bold dim", title="[bold]Canvas[/bold]")
    table.add_column("ID", style="cyan")
    table.add_column("Prompt")
    table.add_column("Position", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Z", justify="right")
    table.add_column("Compiles", justify="center")
    for widget in workspace.store.widgets:
        compiled = workspace.renderer.compile(widget)
        table.add_row(
            widget.id,
            widget.prompt_text[:60],
            f"{widget.x:.0f}, {widget.y:.0f}",
            f"{widget.width:.0f}×{widget.height:.0f}",
            str(widget.z_index),
            "[green]✓[/green]" if compiled.error is None else f"[red]✗[/red] [dim]{compiled.error[:40]}[/dim]",
        )
    console.print(table)


def _export(workspace, path: Path) -> None:
    data = [w.model_dump(mode="json") for w in workspace.store.widgets]
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    console.print(f"[dim]Canvas exported to {path}[/dim]")


def _build_workspace(preset: Optional[str]):
    """Workspace over the persisted settings and the configured backends."""
    from ouroboros.callbacks import LoggingCallback
    from ouroboros.config import config
    from ouroboros.core.workspace import Workspace
    return Workspace.create(config=config, callbacks=[LoggingCallback()], preset=preset)


async def _execute(prompt: str, preset: Optional[str], export: Optional[Path]) -> int:
    workspace = _build_workspace(preset)

    with console.status(f"[blue]Working on:[/blue] {prompt}"):
        report = await workspace.engine.submit_request(prompt)

    outcome = report.outcome.value
    color = _OUTCOME_COLOR.get(outcome, "white")
    if outcome == "not_configured":
        console.print(Panel(
            f"[red]{report.error}[/red]\n[dim]Set a key with: ouroboros settings set-key <provider> <key>[/dim]",
            title="[bold red]Configuration Required[/bold red]",
            border_style="red",
        ))
        return 1

    summary = (
        f"[bold]Request:[/bold] {prompt}\n"
        f"[bold]Plan:[/bold] {report.plan.thought if report.plan else '-'}\n"
        f"[bold]Outcome:[/bold] [{color}]{outcome.upper()}[/{color}]  "
        f"[dim][green]{len(report.created)} created[/green], {len(report.updated)} updated, "
        f"{len(report.deleted)} deleted"
        + (f", [red]{len(report.failed)} failed[/red]" if report.failed else "")
        + "[/dim]"
    )
    console.print()
    console.print(Panel(summary, title="[bold blue]Ouroboros Run Summary[/bold blue]", border_style="blue"))
    _print_log(workspace.engine.logs)
    _print_widgets(workspace)

    if export is not None:
        _export(workspace, export)
    return 0


def run_request(
    prompt: str = typer.Argument(..., help="What to build, change or remove"),
    preset: Optional[str] = typer.Option(None, "--preset", "-p", help="Start from a preset canvas"),
    export: Optional[Path] = typer.Option(None, "--export", "-o", help="Write the resulting canvas to a JSON file"),
    verbose: bool = typer.Option(False, "--verbose", help="Show engine logs on stderr"),
):
    """Run a request against an in-memory canvas and print the activity log.

    Example:
        ouroboros run "Add a pomodoro timer"
        ouroboros run "Remove the stock ticker" --preset analyst -o canvas.json
    """
    from ouroboros.config import config
    logging.basicConfig(level="DEBUG" if verbose else config.log_level.upper())

    try:
        code = asyncio.run(_execute(prompt, preset, export))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(1)
    except Exception as exc:
        console.print(f"\n[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    if code:
        raise typer.Exit(code)
