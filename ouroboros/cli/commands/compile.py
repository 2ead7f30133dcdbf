"""ouroboros compile — Compile and render a widget source file in the sandbox."""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

console = Console()


def compile_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Widget source file"),
    theme: str = typer.Option("light", "--theme", help="light or dark"),
    language: str = typer.Option("en", "--language", help="en or es"),
    show_tree: bool = typer.Option(True, "--tree/--no-tree", help="Print the rendered element tree"),
):
    """Compile a widget file exactly as the canvas would and render it once.

    Exits 1 on a compile or runtime error.

    Example:
        ouroboros compile my_widget.py --theme dark
    """
    from ouroboros.runtime.bridge import HostBridge
    from ouroboros.runtime.render import COMPILE_FAILED, RUNTIME_ERROR, WidgetRenderer
    from ouroboros.settings import AppSettings, SettingsHandle
    from ouroboros.types import RenderPhase, Widget

    try:
        settings = AppSettings().merged({"theme": theme, "language": language})
    except ValueError as exc:
        console.print(f"[red]Invalid option:[/red] {exc}")
        raise typer.Exit(2)

    source = path.read_text(encoding="utf-8")
    widget = Widget(id=path.stem, source_code=source, prompt_text=str(path), width=450, height=500)
    handle = SettingsHandle(settings)
    result = WidgetRenderer(handle, HostBridge(handle)).render(widget)

    if result.error:
        console.print(Panel(
            f"[red]{result.error}[/red]",
            title=f"[bold red]{COMPILE_FAILED if result.phase == RenderPhase.COMPILE else RUNTIME_ERROR}[/bold red]",
            border_style="red",
        ))
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {path} compiled and rendered")
    if show_tree:
        console.print(Syntax(json.dumps(result.element.to_dict(), indent=2), "json", theme="ansi_dark"))
