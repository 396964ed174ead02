"""Builds collaborators from settings"""

from typing import Optional

from k3sjoin.cloud.discovery import TagDiscovery
from k3sjoin.cloud.metadata import InstanceMetadata
from k3sjoin.cluster.k3s import K3sControl
from k3sjoin.cluster.membership import KubectlMembership
from k3sjoin.config.settings import Settings
from k3sjoin.coordinator import Coordinator
from k3sjoin.health import EndpointProbe
from k3sjoin.installer.bootstrap import ApplicationInstaller
from k3sjoin.participant import Participant
from k3sjoin.polling import CancelToken
from k3sjoin.store import JoinMaterialStore, SSMParameterStore


class Runtime:
    """Lazily constructed collaborators for one CLI invocation"""

    def __init__(self, settings: Settings, cancel: Optional[CancelToken] = None):
        self.settings = settings
        self.cancel = cancel or CancelToken()
        self._metadata = None
        self._materials = None

    @property
    def metadata(self) -> InstanceMetadata:
        if self._metadata is None:
            self._metadata = InstanceMetadata()
        return self._metadata

    def region(self) -> str:
        # The metadata service always knows the region on an instance
        return self.settings.store.region or self.metadata.region()

    @property
    def materials(self) -> JoinMaterialStore:
        if self._materials is None:
            s = self.settings.store
            store = SSMParameterStore(region=self.region(), parameter_type=s.parameter_type)
            self._materials = JoinMaterialStore(
                store,
                secret_key=s.secret_key,
                endpoint_key=s.endpoint_key,
                record_key=s.record_key,
            )
        return self._materials

    def control(self) -> K3sControl:
        c = self.settings.control
        return K3sControl(
            install_url=c.install_url,
            token_path=c.token_path,
            kubeconfig=c.kubeconfig,
            kubectl=c.kubectl,
            server_args=c.server_args,
            agent_args=c.agent_args,
            health_attempts=c.health_attempts,
            health_interval=c.health_interval,
            cancel=self.cancel,
        )

    def membership(self) -> KubectlMembership:
        c = self.settings.control
        return KubectlMembership(kubectl=c.kubectl, kubeconfig=c.kubeconfig)

    def installer(self) -> ApplicationInstaller:
        c = self.settings.control
        return ApplicationInstaller(self.settings.application, kubeconfig=c.kubeconfig, kubectl=c.kubectl)

    def coordinator(self, install_application: bool = True) -> Coordinator:
        after_ready = None
        if install_application and self.settings.application.enabled:
            after_ready = self.installer().install

        return Coordinator(
            materials=self.materials,
            control=self.control(),
            membership=self.membership(),
            metadata=self.metadata,
            settings=self.settings.coordinator,
            port=self.settings.control.port,
            advertise=self.settings.control.advertise,
            after_ready=after_ready,
            cancel=self.cancel,
        )

    def probe(self) -> EndpointProbe:
        p = self.settings.participant
        return EndpointProbe(
            path=p.health_path,
            healthy_statuses=p.healthy_statuses,
            timeout=p.probe_timeout,
        )

    def discovery(self) -> Optional[TagDiscovery]:
        p = self.settings.participant
        if not p.discovery_tag_value:
            return None
        return TagDiscovery(
            region=self.region(),
            tag_key=p.discovery_tag_key,
            tag_value=p.discovery_tag_value,
            address=p.discovery_address,
            port=self.settings.control.port,
        )

    def participant(self) -> Participant:
        return Participant(
            materials=self.materials,
            control=self.control(),
            probe=self.probe(),
            settings=self.settings.participant,
            discovery=self.discovery(),
            cancel=self.cancel,
        )
