"""Control node bootstrap.

The coordinator starts the k3s server, publishes the join material to the
shared parameter store and then waits until every expected node reports
Ready. A membership timeout is reported as a failure; nothing already done
is rolled back.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from rich.console import Console

from k3sjoin.cloud.metadata import InstanceMetadata
from k3sjoin.cluster.k3s import K3sControl
from k3sjoin.cluster.membership import KubectlMembership, count_ready
from k3sjoin.config.settings import CoordinatorSettings
from k3sjoin.errors import FatalError, MembershipTimeout, format_duration
from k3sjoin.material import JoinMaterial
from k3sjoin.polling import CancelToken, poll_until
from k3sjoin.store import JoinMaterialStore

console = Console()


@dataclass
class BootstrapResult:
    material: JoinMaterial
    ready_nodes: int
    elapsed: float


class Coordinator:
    """Bootstraps the control node and publishes join material"""

    def __init__(
        self,
        materials: JoinMaterialStore,
        control: K3sControl,
        membership: KubectlMembership,
        metadata: InstanceMetadata,
        settings: CoordinatorSettings,
        port: int = 6443,
        advertise: str = "local",
        after_ready: Optional[Callable[[], None]] = None,
        cancel: Optional[CancelToken] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.materials = materials
        self.control = control
        self.membership = membership
        self.metadata = metadata
        self.settings = settings
        self.port = port
        self.advertise = advertise
        self.after_ready = after_ready
        self.cancel = cancel
        self.clock = clock
        self.sleep = sleep

    def bootstrap(self) -> BootstrapResult:
        console.print("[bold][INIT][/bold] Control plane node initialization")

        console.print("[bold][K3S][/bold] Starting k3s server")
        self.control.start_control_service()

        secret = self.control.read_join_secret()
        endpoint = self.endpoint()
        console.print(f"[bold][K3S][/bold] Server URL: {endpoint}")

        material = self.publish(secret, endpoint)

        result = self.wait_for_members(self.settings.expected_nodes)

        if self.after_ready is not None:
            self.after_ready()

        return BootstrapResult(material=material, ready_nodes=result.value, elapsed=result.elapsed)

    def endpoint(self) -> str:
        """URL of the control service on this node"""
        address = self.metadata.address(self.advertise)
        if not address:
            raise FatalError("Failed to get the control plane IP address")
        return f"https://{address}:{self.port}"

    def publish(self, secret: str, endpoint: str) -> JoinMaterial:
        """Write the join secret, then the endpoint, then the versioned record"""
        if not secret:
            raise FatalError("Refusing to publish an empty join secret")
        if not endpoint:
            raise FatalError("Refusing to publish an empty join endpoint")

        material = JoinMaterial.create(endpoint, secret)
        console.print(
            f"[bold][K3S][/bold] Storing join material in the parameter store "
            f"(generation {material.generation})"
        )
        self.materials.publish(material)
        return material

    def wait_for_members(self, expected: int):
        """Poll until exactly `expected` nodes report ready"""
        timeout = self.settings.membership_timeout
        ready_status = self.settings.ready_status
        last_count = {"ready": 0}

        console.print(f"[bold][WAIT][/bold] Waiting for {expected} nodes to become {ready_status}")

        def check():
            ready = count_ready(self.membership.list_nodes(), ready_status)
            last_count["ready"] = ready
            console.print(f"[bold][WAIT][/bold] Ready nodes: {ready} / {expected}")
            return ready if ready == expected else None

        def on_retry(attempt, error):
            if error is not None:
                console.print(f"[yellow][WAIT] Membership unavailable: {error}[/yellow]")

        kwargs = {}
        if self.clock is not None:
            kwargs["clock"] = self.clock

        result = poll_until(
            check,
            interval=self.settings.membership_interval,
            timeout=timeout,
            cancel=self.cancel,
            sleep=self.sleep,
            on_retry=on_retry,
            **kwargs,
        )

        if result.cancelled:
            raise FatalError("Wait for cluster membership was cancelled")
        if not result:
            raise MembershipTimeout(last_count["ready"], expected, timeout)

        console.print(
            f"[green][SUCCESS] All {expected} nodes are {ready_status} "
            f"after {format_duration(result.elapsed)}[/green]"
        )
        return result
