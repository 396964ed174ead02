"""Cluster inspection commands"""

import sys

import click
from rich.console import Console
from rich.table import Table

from k3sjoin.cluster.membership import count_ready
from k3sjoin.errors import JoinError
from k3sjoin.material import mask

console = Console()


@click.command()
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def nodes(ctx, format):
    """List cluster nodes and their status"""
    runtime = ctx.obj["runtime"]
    ready_status = runtime.settings.coordinator.ready_status

    try:
        members = runtime.membership().list_nodes()
    except JoinError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if format == "json":
        console.print_json(
            data=[{"name": n.name, "status": n.status, "roles": n.roles, "version": n.version} for n in members]
        )
        return

    table = Table(title="Nodes")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Roles")
    table.add_column("Version")

    for node in members:
        style = "green" if node.has_condition(ready_status) else "red"
        table.add_row(node.name, f"[{style}]{node.status}[/{style}]", node.roles, node.version)

    console.print(table)
    console.print(
        f"{count_ready(members, ready_status)} / {runtime.settings.coordinator.expected_nodes} nodes {ready_status}"
    )


@click.command()
@click.pass_context
def material(ctx):
    """Show the published join material"""
    runtime = ctx.obj["runtime"]

    try:
        current = runtime.materials.read()
    except JoinError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    table = Table(title="Join Material")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Endpoint", current.endpoint or "[red]missing[/red]")
    table.add_row("Secret", mask(current.secret) or "[red]missing[/red]")
    table.add_row("Generation", current.generation or "[dim]legacy keys[/dim]")

    console.print(table)

    if not current.complete:
        sys.exit(1)
