"""Control node commands"""

import sys

import click
from rich.console import Console

from k3sjoin.errors import FatalError

console = Console()


@click.command()
@click.option("--expected-workers", type=int, help="Worker nodes to wait for (overrides config)")
@click.option("--skip-install", is_flag=True, help="Do not install the application chart")
@click.pass_context
def coordinator(ctx, expected_workers, skip_install):
    """Bootstrap the control node and publish join material"""
    from k3sjoin.cli.main import cancel_on_sigterm

    runtime = ctx.obj["runtime"]
    if expected_workers is not None:
        if expected_workers < 0:
            raise click.BadParameter("must not be negative", param_hint="--expected-workers")
        runtime.settings.coordinator.expected_nodes = expected_workers + 1

    cancel_on_sigterm(runtime)

    try:
        result = runtime.coordinator(install_application=not skip_install).bootstrap()
    except FatalError as e:
        console.print(f"[red][ERROR] {e}[/red]")
        sys.exit(1)

    console.print(
        f"[green]✓[/green] Control plane ready with {result.ready_nodes} nodes "
        f"(generation {result.material.generation})"
    )


@click.command()
@click.option("--endpoint", help="Endpoint to publish (default: this node's address)")
@click.pass_context
def publish(ctx, endpoint):
    """Publish join material from the local join token"""
    runtime = ctx.obj["runtime"]

    try:
        node = runtime.coordinator(install_application=False)
        secret = node.control.read_join_secret()
        material = node.publish(secret, endpoint or node.endpoint())
    except FatalError as e:
        console.print(f"[red][ERROR] {e}[/red]")
        sys.exit(1)

    console.print(f"[green]✓[/green] Published {material.endpoint} (generation {material.generation})")


@click.command()
@click.option("--expected-nodes", type=int, help="Total nodes to wait for, control node included")
@click.option("--timeout", type=float, help="Seconds to wait (overrides config)")
@click.pass_context
def wait(ctx, expected_nodes, timeout):
    """Wait until the expected number of nodes are Ready"""
    from k3sjoin.cli.main import cancel_on_sigterm

    runtime = ctx.obj["runtime"]
    settings = runtime.settings.coordinator
    if timeout is not None:
        settings.membership_timeout = timeout
    expected = expected_nodes if expected_nodes is not None else settings.expected_nodes

    cancel_on_sigterm(runtime)

    try:
        runtime.coordinator(install_application=False).wait_for_members(expected)
    except FatalError as e:
        console.print(f"[red][ERROR] {e}[/red]")
        sys.exit(1)
