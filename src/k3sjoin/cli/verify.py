"""Verification commands"""

import sys

import click
from rich.console import Console

from k3sjoin.installer.bootstrap import check_prerequisites, required_tools

console = Console()


@click.command()
@click.option("--endpoint", help="Also probe this control service endpoint")
@click.pass_context
def verify(ctx, endpoint):
    """Verify node prerequisites"""
    runtime = ctx.obj["runtime"]
    failed = False

    missing = check_prerequisites(required_tools(runtime.settings.application.enabled))
    if missing:
        failed = True

    if endpoint:
        probe = runtime.probe()
        if probe.is_healthy(endpoint):
            console.print(f"[green]✓[/green] {probe.url_for(endpoint)} is healthy")
        else:
            console.print(f"[red]✗[/red] {probe.url_for(endpoint)} is not healthy")
            failed = True

    if failed:
        sys.exit(1)
    console.print("\n[green]✅ All verifications passed![/green]")
