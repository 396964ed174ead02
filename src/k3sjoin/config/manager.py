"""Configuration management for k3sjoin"""

import os
from pathlib import Path
from typing import Any, Dict

import yaml

from k3sjoin.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("/etc/k3sjoin/config.yaml")

# (environment variable, config section, key, type)
ENV_OVERRIDES = [
    ("WORKER_NODE_COUNT", "cluster", "expected_workers", int),
    ("EXPECTED_NODES", "cluster", "expected_nodes", int),
    ("AWS_REGION", "store", "region", str),
    ("K3SJOIN_REGION", "store", "region", str),
    ("K3SJOIN_SECRET_KEY", "store", "secret_key", str),
    ("K3SJOIN_ENDPOINT_KEY", "store", "endpoint_key", str),
    ("K3SJOIN_RECORD_KEY", "store", "record_key", str),
    ("K3SJOIN_DISCOVERY_TAG", "participant", "discovery_tag_value", str),
    ("K3SJOIN_APP_VERSION", "application", "version", str),
    ("K3SJOIN_APP_HOSTNAME", "application", "hostname", str),
    ("K3SJOIN_REGISTRY_TOKEN", "application", "registry_token", str),
    ("K3SJOIN_LOG_LEVEL", "logging", "level", str),
]


class ConfigManager:
    """Manage k3sjoin configuration"""

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)

    def load(self) -> Dict[str, Any]:
        """Load configuration from file and environment"""
        config = self._load_defaults()

        # Load from file if exists
        if self.config_path.exists():
            with open(self.config_path) as f:
                try:
                    file_config = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigError(f"{self.config_path} must contain a mapping")
            config = self._merge(config, file_config)

        # Override with environment variables
        config = self._apply_env_overrides(config)

        return config

    def _load_defaults(self) -> Dict[str, Any]:
        """Load default configuration"""
        return {
            "cluster": {
                "expected_workers": 1,
                "expected_nodes": None,
            },
            "store": {
                "region": "",
                "secret_key": "/k3s/join-token",
                "endpoint_key": "/k3s/url",
                "record_key": "/k3s/join-material",
                "parameter_type": "String",
            },
            "control": {
                "install_url": "https://get.k3s.io",
                "token_path": "/var/lib/rancher/k3s/server/node-token",
                "kubeconfig": "/etc/rancher/k3s/k3s.yaml",
                "kubectl": "kubectl",
                "port": 6443,
                "advertise": "local",
                "server_args": [],
                "agent_args": [],
                "health_attempts": 10,
                "health_interval": 5,
            },
            "coordinator": {
                "membership_timeout": 300,
                "membership_interval": 30,
                "ready_status": "Ready",
            },
            "participant": {
                "credentials_timeout": 600,
                "credentials_interval": 10,
                "fallback_timeout": 120,
                "health_path": "/healthz",
                "healthy_statuses": [200],
                "probe_timeout": 5,
                "discovery_tag_key": "Name",
                "discovery_tag_value": "",
                "discovery_address": "public",
            },
            "application": {
                "enabled": False,
                "release": "",
                "chart": "",
                "version": "",
                "namespace": "default",
                "hostname": "",
                "timeout": "20m",
                "cert_manager": True,
                "repositories": {},
                "registry": "",
                "registry_username": "",
                "registry_token": "",
                "pull_secret": "",
                "values": {},
            },
            "logging": {
                "level": "info",
            },
        }

    def _merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge two configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides"""
        for var, section, key, kind in ENV_OVERRIDES:
            raw = os.getenv(var)
            if not raw:
                continue

            if kind is int:
                try:
                    value = int(raw)
                except ValueError:
                    raise ConfigError(f"{var} must be an integer, got {raw!r}")
            else:
                value = raw

            config.setdefault(section, {})[key] = value

        return config
