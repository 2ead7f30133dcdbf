"""Ouroboros CLI — Typer application."""

import typer
from rich.console import Console

from ouroboros.version import __version__

app = typer.Typer(
    name="ouroboros",
    help="Ouroboros: describe a widget, get a widget. Plans, writes and places UI components with an LLM.",
    no_args_is_help=True,
    invoke_without_command=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", is_eager=True, help="Show version"),
):
    """Ouroboros CLI."""
    if version:
        console.print(f"Ouroboros v{__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


# ── Core commands ──────────────────────────────────────────────────────────────
from ouroboros.cli.commands import run, compile as compile_cmd, serve  # noqa: E402

app.command(name="run", help="Plan and build widgets for a request on an in-memory canvas")(run.run_request)
app.command(name="compile", help="Compile and render a widget source file in the sandbox")(compile_cmd.compile_file)
app.command(name="serve", help="Start the HTTP API server")(serve.serve)

# ── Configuration ──────────────────────────────────────────────────────────────
from ouroboros.cli.commands import config, presets, settings  # noqa: E402

app.command(name="config", help="Show resolved configuration")(config.config_show)
app.command(name="presets", help="List available canvas presets")(presets.presets_list)

settings_app = typer.Typer(name="settings", help="Show or change persisted user settings.")
settings_app.command("show", help="Show settings with keys masked")(settings.settings_show)
settings_app.command("set-key", help="Store an API key for a backend")(settings.settings_set_key)
settings_app.command("set-model", help="Choose the model for a backend")(settings.settings_set_model)
settings_app.command("set-provider", help="Switch the active backend")(settings.settings_set_provider)
app.add_typer(settings_app)


if __name__ == "__main__":
    app()
