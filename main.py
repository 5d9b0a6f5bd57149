from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from api.dependencies import build_services
from config import ConfigManager
from core.cron import CronManager
from core.models import RefreshSummary

app = typer.Typer(help="R2 Dashboard: multi-account R2 storage monitoring")
console = Console()


def _summary_table(summary: RefreshSummary, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta", justify="right")
    table.add_row("Users", str(summary.total_users))
    table.add_row("Active accounts", str(summary.total_accounts))
    table.add_row("Buckets", str(summary.total_buckets))
    table.add_row("Stats refreshed", str(summary.refreshed_stats))
    table.add_row("Errors", str(summary.errors))
    table.add_row("Finished at", summary.timestamp.isoformat() if summary.timestamp else "-")
    return table


@app.command()
def refresh(trigger: str = typer.Option("manual", help="Label recorded in the refresh log")):
    """Force-refresh the stats of every bucket of every user (used by cron)."""
    services = build_services(ConfigManager())
    try:
        summary = services.scheduler.run_global_refresh(trigger=trigger)
    except Exception as e:
        console.print(f"[bold red]ERROR:[/bold red] Refresh failed: {e}")
        raise typer.Exit(code=1)
    console.print(_summary_table(summary, "Global refresh"))


@app.command()
def status():
    """Show the summary of the last global refresh and the cron job."""
    services = build_services(ConfigManager())
    summary = services.scheduler.last_summary()
    if summary is None:
        console.print("[yellow]No global refresh recorded in the last 24 hours.[/yellow]")
    else:
        console.print(_summary_table(summary, "Last global refresh"))

    job = CronManager().get_refresh_job()
    if job is None:
        console.print("Cron job: [yellow]not installed[/yellow]")
    else:
        state = "enabled" if job["enabled"] else "disabled"
        console.print(f"Cron job: [green]{job['schedule']}[/green] ({state})")


@app.command()
def schedule(cron: Optional[str] = typer.Option(None, help="Cron expression, default from config")):
    """Install the periodic refresh in the user crontab."""
    config_manager = ConfigManager()
    expression = cron or config_manager.get_refresh_settings()["schedule"]
    try:
        CronManager().install_refresh_job(expression)
    except ValueError as e:
        console.print(f"[bold red]ERROR:[/bold red] {e}")
        raise typer.Exit(code=1)
    if cron:
        config_manager.update_section("refresh", schedule=cron)
    console.print(f"[bold green]SUCCESS:[/bold green] Refresh scheduled at '{expression}'")


@app.command()
def unschedule():
    """Remove the periodic refresh from the user crontab."""
    if CronManager().remove_refresh_job():
        console.print("[bold green]SUCCESS:[/bold green] Refresh job removed")
    else:
        console.print("[blue]INFO:[/blue] No refresh job was installed")


@app.command()
def secret():
    """Print the shared secret expected in the X-Cron-Secret header."""
    console.print(ConfigManager().cron_secret)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
):
    """Start the API server in the foreground."""
    from api_server import run

    run(host=host, port=port)


if __name__ == "__main__":
    app()
