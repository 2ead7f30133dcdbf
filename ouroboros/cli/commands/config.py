"""ouroboros config — Show resolved Ouroboros configuration."""

import os

from rich import box
from rich.console import Console
from rich.table import Table

from ouroboros.settings import ENV_KEYS, mask_secret

console = Console()


def config_show():
    """Show the resolved Ouroboros configuration.

    Reads from environment variables and .env file.
    Provider API keys found in the environment are masked.

    Example:
        ouroboros config
    """
    from ouroboros.config import OuroborosConfig
    cfg = OuroborosConfig()

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        show_lines=False,
        title="[bold]Ouroboros Configuration[/bold]",
    )
    table.add_column("Key", style="cyan", width=28)
    table.add_column("Value", width=50)
    table.add_column("Env Var", style="dim", width=36)

    sections = [
        ("App", ["debug", "log_level", "settings_path", "presets_dir"]),
        ("LLM", ["llm_timeout_seconds", "llm_max_tokens", "llm_temperature", "ollama_base_url"]),
        ("Retry", ["llm_max_retries", "llm_retry_base_delay", "llm_retry_max_jitter"]),
        ("Pacing", [
            "action_pacing_seconds", "delete_settle_seconds",
            "failure_pause_seconds", "regenerate_pause_seconds",
        ]),
        ("Server", ["host", "port", "cors_origins", "viewport_width"]),
    ]

    for section_name, keys in sections:
        table.add_row(f"[bold]{section_name}[/bold]", "", "")
        for key in keys:
            table.add_row(f"  {key}", str(getattr(cfg, key)), f"OUROBOROS_{key.upper()}")

    table.add_row("[bold]Provider keys[/bold]", "", "")
    for provider, names in ENV_KEYS.items():
        found = next((os.environ[name] for name in names if os.environ.get(name)), "")
        table.add_row(
            f"  {provider.value}",
            mask_secret(found) if found else "[dim]not set[/dim]",
            " / ".join(names),
        )

    console.print(table)
