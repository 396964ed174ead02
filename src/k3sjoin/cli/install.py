"""Application installation commands"""

import sys

import click
from rich.console import Console

from k3sjoin.errors import FatalError
from k3sjoin.installer.bootstrap import check_prerequisites, required_tools

console = Console()


@click.command()
@click.option("--version", "chart_version", help="Chart version (overrides config)")
@click.option("--hostname", help="Application hostname (overrides config)")
@click.option("--dry-run", is_flag=True, help="Validate settings without installing")
@click.pass_context
def install(ctx, chart_version, hostname, dry_run):
    """Install the application chart with Helm"""
    runtime = ctx.obj["runtime"]
    app = runtime.settings.application
    if chart_version:
        app.version = chart_version
    if hostname:
        app.hostname = hostname

    installer = runtime.installer()

    try:
        installer.validate()
        if dry_run:
            console.print(f"[green]✓[/green] Settings valid for {app.release} {app.version}")
            return

        missing = check_prerequisites(required_tools(application_enabled=True))
        if missing:
            console.print(f"[red][ERROR] Missing prerequisites: {', '.join(missing)}[/red]")
            sys.exit(1)

        installer.install()
    except FatalError as e:
        console.print(f"[red][ERROR] {e}[/red]")
        sys.exit(1)
