"""ouroboros presets — List canvas presets reachable through the search path."""

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()


def presets_list():
    """List every preset with its widget count.

    Example:
        ouroboros presets
    """
    from ouroboros.config import config
    from ouroboros.core.presets import list_presets, read_preset
    from ouroboros.exceptions import PresetNotFound

    table = Table(box=box.ROUNDED, header_style="bold dim", title="[bold]Presets[/bold]")
    table.add_column("Name", style="cyan")
    table.add_column("Widgets", justify="right")
    table.add_column("Description")

    for name in list_presets(config):
        try:
            preset = read_preset(name, config=config)
        except PresetNotFound as exc:
            table.add_row(name, "-", f"[red]{exc}[/red]")
            continue
        table.add_row(name, str(len(preset.widgets)), preset.description)

    console.print(table)
