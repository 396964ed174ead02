"""Tests for prerequisite checks and application install"""

import pytest

from k3sjoin.config.settings import ApplicationSettings
from k3sjoin.errors import ConfigError, FatalError
from k3sjoin.installer.bootstrap import ApplicationInstaller, check_prerequisites, required_tools
from tests.conftest import FakeRunner


def app_settings(**overrides):
    values = dict(
        enabled=True,
        release="mvai",
        chart="oci://ghcr.io/memverge/charts/mvai",
        version="0.3.1",
        namespace="cattle-system",
        hostname="demo.example.com",
        registry="ghcr.io/memverge",
        registry_username="mv-customer-support",
        registry_token="ghp_secret",
        pull_secret="memverge-dockerconfig",
        values={"bootstrapPassword": "admin", "ingress.tls.source": "letsEncrypt"},
    )
    values.update(overrides)
    return ApplicationSettings(**values)


class TestPrerequisites:
    """Test prerequisite checks"""

    def test_reports_missing(self):
        present = {"curl", "sh"}
        missing = check_prerequisites(["curl", "sh", "helm"], which=lambda tool: tool in present)
        assert missing == ["helm"]

    def test_required_tools(self):
        assert "helm" not in required_tools(False)
        assert "helm" in required_tools(True)


class TestApplicationInstaller:
    """Test ApplicationInstaller"""

    def test_validate_lists_missing_settings(self):
        installer = ApplicationInstaller(app_settings(version="", hostname="", registry_token=""))
        with pytest.raises(ConfigError) as excinfo:
            installer.validate()
        message = str(excinfo.value)
        assert "application.version" in message
        assert "application.hostname" in message
        assert "application.registry_token" in message

    def test_install_sequence(self, tmp_path):
        runner = FakeRunner({("kubectl", "get", "namespace"): (1, "", "NotFound")})
        installer = ApplicationInstaller(
            app_settings(), runner=runner, registry_config=tmp_path / "config.json"
        )

        installer.install()

        commands = runner.commands()
        assert ["helm", "repo", "add", "jetstack", "https://charts.jetstack.io", "--force-update"] in commands
        assert ["helm", "repo", "update"] in commands
        assert ["kubectl", "create", "namespace", "cert-manager"] in commands
        assert ["kubectl", "create", "namespace", "cattle-system"] in commands

        login = next(c for c in runner.calls if c["cmd"][:3] == ["helm", "registry", "login"])
        assert login["input"] == "ghp_secret"
        assert "ghp_secret" not in login["cmd"]

        chart = commands[-1]
        assert chart[:5] == ["helm", "upgrade", "--install", "mvai", "oci://ghcr.io/memverge/charts/mvai"]
        assert "--version" in chart and chart[chart.index("--version") + 1] == "0.3.1"
        assert "hostname=demo.example.com" in chart
        assert "bootstrapPassword=admin" in chart

        assert all(call["env"] == {"KUBECONFIG": "/etc/rancher/k3s/k3s.yaml"} for call in runner.calls)

    def test_existing_namespace_is_kept(self):
        runner = FakeRunner()
        installer = ApplicationInstaller(app_settings(registry="", cert_manager=False), runner=runner)

        installer.install()

        assert not any(cmd[:2] == ["kubectl", "create"] for cmd in runner.commands())
        assert not any(cmd[:2] == ["helm", "registry"] for cmd in runner.commands())

    def test_chart_failure_is_fatal(self):
        runner = FakeRunner({("helm", "upgrade", "--install", "mvai"): (1, "", "timed out waiting")})
        installer = ApplicationInstaller(app_settings(registry="", cert_manager=False), runner=runner)
        with pytest.raises(FatalError, match="Installing chart"):
            installer.install()
