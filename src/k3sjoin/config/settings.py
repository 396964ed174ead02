"""Typed views over the configuration dictionary"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from k3sjoin.errors import ConfigError


@dataclass
class StoreSettings:
    region: str = ""
    secret_key: str = "/k3s/join-token"
    endpoint_key: str = "/k3s/url"
    record_key: str = "/k3s/join-material"
    parameter_type: str = "String"


@dataclass
class ControlSettings:
    install_url: str = "https://get.k3s.io"
    token_path: str = "/var/lib/rancher/k3s/server/node-token"
    kubeconfig: str = "/etc/rancher/k3s/k3s.yaml"
    kubectl: str = "kubectl"
    port: int = 6443
    advertise: str = "local"
    server_args: List[str] = field(default_factory=list)
    agent_args: List[str] = field(default_factory=list)
    health_attempts: int = 10
    health_interval: float = 5


@dataclass
class CoordinatorSettings:
    expected_nodes: int = 2
    membership_timeout: float = 300
    membership_interval: float = 30
    ready_status: str = "Ready"


@dataclass
class ParticipantSettings:
    credentials_timeout: float = 600
    credentials_interval: float = 10
    fallback_timeout: float = 120
    health_path: str = "/healthz"
    healthy_statuses: List[int] = field(default_factory=lambda: [200])
    probe_timeout: float = 5
    discovery_tag_key: str = "Name"
    discovery_tag_value: str = ""
    discovery_address: str = "public"


@dataclass
class ApplicationSettings:
    enabled: bool = False
    release: str = ""
    chart: str = ""
    version: str = ""
    namespace: str = "default"
    hostname: str = ""
    timeout: str = "20m"
    cert_manager: bool = True
    repositories: Dict[str, str] = field(default_factory=dict)
    registry: str = ""
    registry_username: str = ""
    registry_token: str = ""
    pull_secret: str = ""
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Settings:
    store: StoreSettings
    control: ControlSettings
    coordinator: CoordinatorSettings
    participant: ParticipantSettings
    application: ApplicationSettings
    log_level: str = "info"

    @property
    def verbose(self) -> bool:
        return self.log_level.lower() == "debug"


def expected_node_count(cluster: Dict[str, Any]) -> int:
    """Total nodes the coordinator waits for, itself included"""
    total: Optional[int] = cluster.get("expected_nodes")
    if total is not None:
        if int(total) < 1:
            raise ConfigError(f"expected_nodes must be at least 1, got {total}")
        return int(total)

    workers = int(cluster.get("expected_workers", 0))
    if workers < 0:
        raise ConfigError(f"expected_workers must not be negative, got {workers}")
    return workers + 1


def _section(cls, data: Dict[str, Any]):
    known = {name for name in cls.__dataclass_fields__}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown {cls.__name__} option(s): {', '.join(sorted(unknown))}")
    return cls(**data)


def load_settings(config: Dict[str, Any]) -> Settings:
    """Build Settings from a merged configuration dictionary"""
    coordinator = dict(config.get("coordinator", {}))
    coordinator["expected_nodes"] = expected_node_count(config.get("cluster", {}))

    control = _section(ControlSettings, config.get("control", {}))
    if control.advertise not in ("local", "public"):
        raise ConfigError(f"control.advertise must be 'local' or 'public', got {control.advertise!r}")

    participant = _section(ParticipantSettings, config.get("participant", {}))
    if participant.discovery_address not in ("local", "public"):
        raise ConfigError(
            f"participant.discovery_address must be 'local' or 'public', got {participant.discovery_address!r}"
        )

    return Settings(
        store=_section(StoreSettings, config.get("store", {})),
        control=control,
        coordinator=_section(CoordinatorSettings, coordinator),
        participant=participant,
        application=_section(ApplicationSettings, config.get("application", {})),
        log_level=str(config.get("logging", {}).get("level", "info")),
    )
