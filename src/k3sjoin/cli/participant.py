"""Worker node commands"""

import sys

import click
from rich.console import Console

from k3sjoin.errors import FatalError

console = Console()


@click.command()
@click.option("--discovery-tag", help="Coordinator tag value used for fallback discovery")
@click.pass_context
def participant(ctx, discovery_tag):
    """Wait for join material and join the cluster"""
    from k3sjoin.cli.main import cancel_on_sigterm

    runtime = ctx.obj["runtime"]
    if discovery_tag:
        runtime.settings.participant.discovery_tag_value = discovery_tag

    cancel_on_sigterm(runtime)

    try:
        node = runtime.participant()
        material = node.run()
    except FatalError as e:
        console.print(f"[red][ERROR] {e}[/red]")
        sys.exit(1)

    console.print(f"[green]✓[/green] Joined cluster at {material.endpoint}")
