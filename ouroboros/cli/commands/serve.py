"""ouroboros serve — Start the HTTP API server."""

from typing import Optional

import typer
from rich.console import Console

console = Console()


def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to (default from config)"),
    port: Optional[int] = typer.Option(None, help="Port to listen on (default from config)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Start the Ouroboros API server."""
    import uvicorn
    from ouroboros.config import config

    host = host or config.host
    port = port or config.port
    console.print(f"[green]Starting Ouroboros API on {host}:{port}[/green]")
    uvicorn.run("ouroboros.api.main:create_app", factory=True, host=host, port=port, reload=reload)
