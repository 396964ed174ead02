"""Worker node join sequence.

A participant waits for the coordinator's join material, checks that the
published endpoint answers its health probe and then joins as a k3s agent.
If no healthy endpoint shows up in time it looks the coordinator up by
instance tag instead, which is a degraded path.

    WAITING_FOR_CREDENTIALS -> ENDPOINT_FOUND -> HEALTHY -> JOINING -> JOINED
    WAITING_FOR_CREDENTIALS -> FALLBACK_DISCOVERY -> HEALTHY
    any state -> FAILED
"""

from enum import Enum
from typing import Callable, List, Optional

from rich.console import Console

from k3sjoin.cloud.discovery import TagDiscovery
from k3sjoin.cluster.k3s import K3sControl
from k3sjoin.config.settings import ParticipantSettings
from k3sjoin.errors import FatalError, RetryableError
from k3sjoin.health import EndpointProbe
from k3sjoin.material import JoinMaterial
from k3sjoin.polling import CancelToken, poll_until
from k3sjoin.store import JoinMaterialStore

console = Console()


class JoinState(Enum):
    WAITING_FOR_CREDENTIALS = "waiting_for_credentials"
    ENDPOINT_FOUND = "endpoint_found"
    FALLBACK_DISCOVERY = "fallback_discovery"
    HEALTHY = "healthy"
    JOINING = "joining"
    JOINED = "joined"
    FAILED = "failed"


class Participant:
    """Discovers the coordinator and joins the cluster"""

    def __init__(
        self,
        materials: JoinMaterialStore,
        control: K3sControl,
        probe: EndpointProbe,
        settings: ParticipantSettings,
        discovery: Optional[TagDiscovery] = None,
        cancel: Optional[CancelToken] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.materials = materials
        self.control = control
        self.probe = probe
        self.settings = settings
        self.discovery = discovery
        self.cancel = cancel
        self.clock = clock
        self.sleep = sleep
        self.state = JoinState.WAITING_FOR_CREDENTIALS
        self.history: List[JoinState] = [self.state]

    def run(self) -> JoinMaterial:
        """Discover the coordinator and join; returns the material used"""
        console.print("[bold][INIT][/bold] Worker node initialization")
        try:
            material = self.discover()
            self.join(material)
        except FatalError:
            self._enter(JoinState.FAILED)
            raise
        return material

    def discover(self) -> JoinMaterial:
        """Wait for published join material with a healthy endpoint"""
        seen = {"secret": "", "healthy": ""}

        def check():
            material = self.materials.read()
            if material.secret:
                seen["secret"] = material.secret
            if not material.endpoint:
                return None

            if self.state is JoinState.WAITING_FOR_CREDENTIALS:
                self._enter(JoinState.ENDPOINT_FOUND)
                console.print(f"[bold][K3S][/bold] Found join endpoint {material.endpoint}")

            seen["healthy"] = ""
            self.probe.check(material.endpoint)
            seen["healthy"] = material.endpoint

            if not material.secret:
                return None
            return material

        def on_retry(attempt, error):
            if error is not None:
                console.print(f"[dim][WAIT] Attempt {attempt}: {error}[/dim]")

        result = self._poll(
            check,
            timeout=self.settings.credentials_timeout,
            on_retry=on_retry,
        )

        if result.cancelled:
            raise FatalError("Wait for join material was cancelled")

        if result:
            self._enter(JoinState.HEALTHY)
            return result.value

        if seen["healthy"]:
            raise FatalError(f"No join token found for healthy endpoint {seen['healthy']}")

        return self.fallback(seen["secret"])

    def fallback(self, secret: str = "") -> JoinMaterial:
        """Look the coordinator up by instance tag and probe it"""
        self._enter(JoinState.FALLBACK_DISCOVERY)
        console.print(
            "[yellow][FALLBACK] No healthy join endpoint was published in time; "
            "falling back to instance-tag discovery[/yellow]"
        )

        if self.discovery is None:
            raise FatalError("No healthy join endpoint and no fallback discovery configured")

        endpoint = self.discovery.find_endpoint()
        console.print(f"[yellow][FALLBACK] Discovered control plane at {endpoint}[/yellow]")

        if not secret:
            try:
                secret = self.materials.read_secret()
            except RetryableError as e:
                raise FatalError(f"No join token found: {e}") from e
        if not secret:
            raise FatalError("No join token found")

        result = self._poll(
            lambda: self.probe.check(endpoint),
            timeout=self.settings.fallback_timeout,
        )
        if not result:
            raise FatalError(f"Discovered endpoint {endpoint} never became healthy")

        self._enter(JoinState.HEALTHY)
        return JoinMaterial(endpoint=endpoint, secret=secret)

    def join(self, material: JoinMaterial) -> None:
        if not material.complete:
            raise FatalError("Join material is incomplete")

        self._enter(JoinState.JOINING)
        console.print(f"[bold][K3S][/bold] Joining cluster at {material.endpoint}")
        self.control.join(material.endpoint, material.secret)
        self._enter(JoinState.JOINED)
        console.print("[green][SUCCESS] Worker joined cluster[/green]")

    def _poll(self, check, timeout, on_retry=None):
        kwargs = {}
        if self.clock is not None:
            kwargs["clock"] = self.clock
        return poll_until(
            check,
            interval=self.settings.credentials_interval,
            timeout=timeout,
            cancel=self.cancel,
            sleep=self.sleep,
            on_retry=on_retry,
            **kwargs,
        )

    def _enter(self, state: JoinState) -> None:
        self.state = state
        self.history.append(state)
