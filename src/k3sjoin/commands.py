"""Running external commands"""

import os
import subprocess
from pathlib import Path
from typing import Dict, Optional

from rich.console import Console
from rich.markup import escape

from k3sjoin.errors import CommandFailed

console = Console()

verbose = False


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    check: bool = True,
    env: Optional[Dict[str, str]] = None,
    input: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """Run a command and return the result.

    env is merged over the current environment. Values passed through env are
    never echoed, so secrets belong there rather than in cmd.
    """
    if verbose:
        console.print(f"[dim]Running: {' '.join(cmd)}[/dim]")

    command_env = None
    if env:
        command_env = os.environ.copy()
        command_env.update(env)

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=command_env,
            input=input,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise CommandFailed(cmd, 127, str(e)) from e

    if check and result.returncode != 0:
        console.print(f"[red]Command failed with code {result.returncode}[/red]")
        if result.stderr:
            console.print(f"[red]stderr: {escape(result.stderr.strip())}[/red]")
        raise CommandFailed(cmd, result.returncode, result.stderr)

    return result
