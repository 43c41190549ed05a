"""CLI commands for milobanana.

``serve`` runs the JSON-RPC API; ``config`` shows the effective settings and
``init-config`` writes a starter config file.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from milobanana import __logo__, __version__
from milobanana.cli.shared.logging_utils import configure_console, ensure_rotating_log_file
from milobanana.cli.shared.network_utils import is_port_in_use
from milobanana.config.loader import get_config_path, load_config, save_config
from milobanana.config.schema import Config
from milobanana.utils.helpers import mask_secret

app = typer.Typer(
    name="milobanana",
    help=f"{__logo__} milobanana - JSON-RPC backend for metered image generation",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} milobanana v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """milobanana - JSON-RPC backend for metered image generation."""
    pass


def _load_or_exit(config_path: Path | None) -> Config:
    try:
        return load_config(config_path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Bind host (default from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default from config)"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the JSON-RPC API server."""
    from milobanana.api.server import run_server

    config = _load_or_exit(config_path)
    if host:
        config.server.host = host
    if port:
        config.server.port = port

    level = "DEBUG" if verbose else config.logging.level
    configure_console(level)
    log_path = ensure_rotating_log_file("serve", config.logging, level=level)

    bind_host, bind_port = config.server.host, config.server.port
    if is_port_in_use(bind_host, bind_port):
        console.print(
            f"[red]Port {bind_port} is already in use.[/red] "
            f"Close the process using it, or pass [cyan]--port[/cyan] (current: {bind_host}:{bind_port})."
        )
        raise typer.Exit(1)

    console.print(f"{__logo__} Starting milobanana on {bind_host}:{bind_port}...")
    console.print(f"[dim]API base: http://localhost:{bind_port}/api[/dim]")
    console.print(f"[dim]Logs: {log_path}[/dim]")
    run_server(config, log_level="debug" if verbose else "warning")


@app.command("config")
def show_config(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show the effective configuration (secrets masked)."""
    config = _load_or_exit(config_path)
    path = config_path or get_config_path()

    table = Table(title=f"{__logo__} milobanana configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    rows = [
        ("config file", f"{path}" + ("" if path.exists() else " (not found, using defaults)")),
        ("server", f"{config.server.host}:{config.server.port}"),
        ("cors origins", ", ".join(config.server.cors_origins) or "-"),
        ("admin password", mask_secret(config.auth.admin_password)),
        ("jwt secret", mask_secret(config.auth.jwt_secret)),
        ("token ttl", f"{config.auth.token_ttl_seconds}s"),
        ("wechat app id", config.wechat.app_id or "not set"),
        ("wechat app secret", mask_secret(config.wechat.app_secret)),
        ("generation base url", config.generation.base_url),
        ("generation model", config.generation.model),
        ("generation api key", mask_secret(config.generation.api_key)),
        ("unit cost", str(config.metering.unit_cost)),
        ("per-user serialization", "on" if config.metering.serialize_per_user else "off"),
        ("rate limit", _describe_rate_limit(config)),
        ("database", config.storage.db_path),
        ("default points", str(config.storage.default_points)),
    ]
    for name, value in rows:
        table.add_row(name, value)
    console.print(table)


def _describe_rate_limit(config: Config) -> str:
    rl = config.rate_limit
    if not rl.enabled:
        return "disabled"
    return (
        f"{rl.max_requests}/{rl.window_ms // 60000}min, "
        f"auth {rl.auth_max_requests}/{rl.auth_window_ms // 60000}min"
    )


@app.command("init-config")
def init_config(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a config file with default values."""
    path = config_path or get_config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}[/yellow] (use --force to overwrite)")
        raise typer.Exit(1)
    save_config(Config.model_construct(), path)
    console.print(f"[green]✓[/green] Wrote {path}")


if __name__ == "__main__":
    app()
