"""ouroboros settings — Show or change the persisted user settings record."""

import json

import typer
from rich.console import Console
from rich.syntax import Syntax

from ouroboros.types import Provider

console = Console()


def _store():
    from ouroboros.config import config
    from ouroboros.settings import SettingsStore
    return SettingsStore(config.settings_path)


def _provider(name: str) -> Provider:
    try:
        return Provider(name.lower())
    except ValueError:
        console.print(f"[red]Unknown provider:[/red] {name}. Choose from: {', '.join(p.value for p in Provider)}")
        raise typer.Exit(2)


def settings_show():
    """Print the settings record (API keys masked).

    Example:
        ouroboros settings show
    """
    store = _store()
    settings = store.load()
    console.print(f"[dim]{store.path}[/dim]")
    console.print(Syntax(json.dumps(settings.masked(), indent=2), "json", theme="ansi_dark"))


def settings_set_key(
    provider: str = typer.Argument(..., help="google, openai or anthropic"),
    key: str = typer.Argument(..., help="API key"),
):
    """Store an API key for a backend.

    Example:
        ouroboros settings set-key google AIza...
    """
    chosen = _provider(provider)
    if chosen == Provider.OLLAMA:
        console.print("[yellow]Local models need no API key.[/yellow]")
        raise typer.Exit(2)
    store = _store()
    # Environment keys are not written back to the record
    store.save(store.load(seed_env=False).with_key(chosen, key))
    console.print(f"[green]✓[/green] Key for [cyan]{chosen.value}[/cyan] saved")


def settings_set_model(
    provider: str = typer.Argument(..., help="Backend the model belongs to"),
    model: str = typer.Argument(..., help="Model identifier, e.g. gpt-4o"),
):
    """Choose the model for a backend.

    Example:
        ouroboros settings set-model openai gpt-4o-mini
    """
    chosen = _provider(provider)
    store = _store()
    store.save(store.load(seed_env=False).with_model(chosen, model))
    console.print(f"[green]✓[/green] Model for [cyan]{chosen.value}[/cyan] set to {model}")


def settings_set_provider(
    provider: str = typer.Argument(..., help="google, openai, anthropic or ollama"),
):
    """Switch the active backend.

    Example:
        ouroboros settings set-provider anthropic
    """
    chosen = _provider(provider)
    store = _store()
    store.save(store.load(seed_env=False).merged({"provider": chosen.value}))
    console.print(f"[green]✓[/green] Active provider: [cyan]{chosen.value}[/cyan]")
