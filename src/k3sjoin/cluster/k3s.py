"""k3s server and agent installation"""

from pathlib import Path
from typing import Callable, Optional, Sequence

import httpx
from rich.console import Console

from k3sjoin.commands import run_command
from k3sjoin.errors import CommandFailed, FatalError
from k3sjoin.polling import CancelToken, poll_until

console = Console()


class K3sControl:
    """Starts the k3s control service or joins a node to it.

    Both operations download the upstream install script and run it with sh,
    the same way `curl -sfL https://get.k3s.io | sh -s - <mode>` would.
    """

    def __init__(
        self,
        install_url: str = "https://get.k3s.io",
        token_path: str = "/var/lib/rancher/k3s/server/node-token",
        kubeconfig: str = "/etc/rancher/k3s/k3s.yaml",
        kubectl: str = "kubectl",
        server_args: Sequence[str] = (),
        agent_args: Sequence[str] = (),
        health_attempts: int = 10,
        health_interval: float = 5.0,
        runner: Callable = run_command,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Optional[Callable[[float], None]] = None,
        cancel: Optional[CancelToken] = None,
    ):
        self.install_url = install_url
        self.token_path = Path(token_path)
        self.kubeconfig = kubeconfig
        self.kubectl = kubectl
        self.server_args = list(server_args)
        self.agent_args = list(agent_args)
        self.health_attempts = health_attempts
        self.health_interval = health_interval
        self.runner = runner
        self.transport = transport
        self.sleep = sleep
        self.cancel = cancel

    def fetch_installer(self) -> str:
        try:
            with httpx.Client(timeout=60.0, follow_redirects=True, transport=self.transport) as client:
                response = client.get(self.install_url)
        except httpx.HTTPError as e:
            raise FatalError(f"Failed to download k3s installer from {self.install_url}: {e}") from e

        if response.status_code != 200 or not response.text:
            raise FatalError(f"Failed to download k3s installer: HTTP {response.status_code}")
        return response.text

    def start_control_service(self) -> None:
        """Install and start the k3s server, then wait for its API"""
        script = self.fetch_installer()
        self.runner(["sh", "-s", "-", "server", *self.server_args], input=script)

        result = poll_until(
            self.api_ready,
            interval=self.health_interval,
            max_attempts=self.health_attempts,
            sleep=self.sleep,
            cancel=self.cancel,
        )
        if not result:
            raise FatalError(
                f"k3s control service not healthy after {result.attempts} attempts"
            )

    def api_ready(self) -> bool:
        try:
            result = self.runner(
                [self.kubectl, "get", "nodes"],
                check=False,
                env={"KUBECONFIG": self.kubeconfig},
            )
        except CommandFailed:
            return False
        return result.returncode == 0

    def read_join_secret(self) -> str:
        """Read the join token the server generated on startup"""
        try:
            secret = self.token_path.read_text().strip()
        except OSError as e:
            raise FatalError(f"Failed to read the join token from '{self.token_path}': {e}") from e

        if not secret:
            raise FatalError(f"Join token at '{self.token_path}' is empty")
        return secret

    def join(self, endpoint: str, secret: str) -> None:
        """Install the k3s agent pointed at endpoint"""
        if not endpoint or not secret:
            raise FatalError("Refusing to join without both an endpoint and a secret")

        script = self.fetch_installer()
        self.runner(
            ["sh", "-s", "-", "agent", *self.agent_args],
            env={"K3S_URL": endpoint, "K3S_TOKEN": secret},
            input=script,
        )
