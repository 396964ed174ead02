#!/usr/bin/env python3
"""k3sjoin CLI - Main entry point"""

import signal
import sys
from pathlib import Path

import click
from rich.console import Console

from k3sjoin import commands
from k3sjoin.config.manager import DEFAULT_CONFIG_PATH, ConfigManager
from k3sjoin.config.settings import load_settings
from k3sjoin.errors import ConfigError, Terminated
from k3sjoin.runtime import Runtime

console = Console()


@click.group()
@click.option("--config", type=click.Path(), envvar="K3SJOIN_CONFIG", help="Config file path")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, config, verbose):
    """k3sjoin - join k3s nodes through a shared parameter store"""
    ctx.ensure_object(dict)

    if "runtime" not in ctx.obj:
        # Load configuration
        config_path = Path(config) if config else DEFAULT_CONFIG_PATH
        try:
            cfg = ConfigManager(config_path).load()
            settings = load_settings(cfg)
        except ConfigError as e:
            console.print(f"[red][ERROR] {e}[/red]")
            sys.exit(1)

        ctx.obj["config"] = cfg
        ctx.obj["runtime"] = Runtime(settings)

    runtime = ctx.obj["runtime"]
    if verbose:
        runtime.settings.log_level = "debug"
    commands.verbose = runtime.settings.verbose


def cancel_on_sigterm(runtime: Runtime):
    """Abort the running command when the process is asked to terminate.

    Waits in progress are cancelled and Terminated is raised in the main
    thread, so a blocking child process is killed by subprocess.run and the
    command exits 1. Returns the previous handler.
    """

    def handler(signum, frame):
        console.print("[yellow][WARN] Termination requested, cancelling[/yellow]")
        runtime.cancel.cancel()
        raise Terminated(f"Terminated by signal {signum}")

    return signal.signal(signal.SIGTERM, handler)


@cli.command()
def version():
    """Show version information"""
    from k3sjoin import __version__

    console.print(f"k3sjoin version {__version__}")


# Import subcommands
from k3sjoin.cli import cluster, coordinator, install, participant, verify

cli.add_command(coordinator.coordinator)
cli.add_command(coordinator.publish)
cli.add_command(coordinator.wait)
cli.add_command(participant.participant)
cli.add_command(cluster.nodes)
cli.add_command(cluster.material)
cli.add_command(install.install)
cli.add_command(verify.verify)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
