"""Prerequisite checks and application installation with Helm"""

import shutil
from pathlib import Path
from typing import Callable, Dict, Iterable, List

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from k3sjoin.commands import run_command
from k3sjoin.config.settings import ApplicationSettings
from k3sjoin.errors import CommandFailed, ConfigError, FatalError

console = Console()

CERT_MANAGER_REPO = ("jetstack", "https://charts.jetstack.io")
HELM_REGISTRY_CONFIG = Path.home() / ".config" / "helm" / "registry" / "config.json"


def check_prerequisites(tools: Iterable[str], which: Callable = shutil.which) -> List[str]:
    """Check that required executables are on PATH, returning the missing ones"""
    console.print("\n[bold cyan]Checking Prerequisites[/bold cyan]")

    missing = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        for tool in tools:
            task = progress.add_task(f"Checking {tool}...", total=1)

            if which(tool):
                console.print(f"  ✓ {tool} installed")
            else:
                console.print(f"  ✗ {tool} not found")
                missing.append(tool)

            progress.update(task, advance=1)

    if missing:
        console.print(f"\n[yellow]Missing prerequisites: {', '.join(missing)}[/yellow]")
    else:
        console.print("\n[green]✓ All prerequisites installed[/green]")

    return missing


def required_tools(application_enabled: bool) -> List[str]:
    tools = ["curl", "sh"]
    if application_enabled:
        tools += ["helm", "kubectl"]
    return tools


class ApplicationInstaller:
    """Installs the application chart once the cluster is complete"""

    def __init__(
        self,
        settings: ApplicationSettings,
        kubeconfig: str = "/etc/rancher/k3s/k3s.yaml",
        helm: str = "helm",
        kubectl: str = "kubectl",
        runner: Callable = run_command,
        registry_config: Path = HELM_REGISTRY_CONFIG,
    ):
        self.settings = settings
        self.kubeconfig = kubeconfig
        self.helm = helm
        self.kubectl = kubectl
        self.runner = runner
        self.registry_config = Path(registry_config)

    def validate(self) -> None:
        """Fail with every missing setting listed, values never shown"""
        s = self.settings
        missing = [
            name
            for name, value in (
                ("application.release", s.release),
                ("application.chart", s.chart),
                ("application.version", s.version),
                ("application.hostname", s.hostname),
            )
            if not value
        ]
        if s.registry and not s.registry_token:
            missing.append("application.registry_token")
        if s.registry and not s.registry_username:
            missing.append("application.registry_username")

        if missing:
            raise ConfigError(f"Missing required application settings: {', '.join(missing)}")

    def install(self) -> None:
        self.validate()
        s = self.settings
        console.print(f"\n[bold cyan]Installing {s.release} {s.version}[/bold cyan]")

        steps = [("Adding Helm repositories", self.add_repositories)]
        if s.cert_manager:
            steps.append(("Installing cert-manager", self.install_cert_manager))
        if s.registry:
            steps.append(("Logging into chart registry", self.registry_login))
        steps.append((f"Preparing namespace {s.namespace}", self.prepare_namespace))
        steps.append((f"Installing chart {s.chart}", self.install_chart))

        for description, step in steps:
            console.print(f"[bold][HELM][/bold] {description}")
            try:
                step()
            except CommandFailed as e:
                raise FatalError(f"{description} failed: {e}") from e

        console.print(f"[green][SUCCESS] {s.release} installed[/green]")

    def add_repositories(self) -> None:
        repositories: Dict[str, str] = dict(self.settings.repositories)
        if self.settings.cert_manager:
            repositories.setdefault(*CERT_MANAGER_REPO)

        for name, url in repositories.items():
            self._helm("repo", "add", name, url, "--force-update")
        if repositories:
            self._helm("repo", "update")

    def install_cert_manager(self) -> None:
        self._ensure_namespace("cert-manager")
        self._helm(
            "upgrade", "--install", "cert-manager", "jetstack/cert-manager",
            "--namespace", "cert-manager",
            "--set", "crds.enabled=true",
            "--wait",
        )

    def registry_login(self) -> None:
        s = self.settings
        # A stale login makes the next one fail
        self._helm("registry", "logout", s.registry, check=False)
        self.runner(
            [self.helm, "registry", "login", s.registry, "-u", s.registry_username, "--password-stdin"],
            env=self._env(),
            input=s.registry_token,
        )

    def prepare_namespace(self) -> None:
        s = self.settings
        self._ensure_namespace(s.namespace)
        if s.registry and s.pull_secret:
            self._kubectl(
                "create", "secret", "generic", s.pull_secret,
                "--namespace", s.namespace,
                f"--from-file=.dockerconfigjson={self.registry_config}",
                "--type=kubernetes.io/dockerconfigjson",
                check=False,
            )

    def install_chart(self) -> None:
        s = self.settings
        values = {"hostname": s.hostname}
        values.update(s.values)

        args = [
            "upgrade", "--install", s.release, s.chart,
            "--namespace", s.namespace,
            "--wait", "--timeout", s.timeout,
            "--version", s.version,
        ]
        for key, value in values.items():
            args += ["--set", f"{key}={_helm_value(value)}"]

        self._helm(*args)

    def _ensure_namespace(self, namespace: str) -> None:
        result = self._kubectl("get", "namespace", namespace, check=False)
        if result.returncode != 0:
            self._kubectl("create", "namespace", namespace)

    def _env(self) -> Dict[str, str]:
        return {"KUBECONFIG": self.kubeconfig}

    def _helm(self, *args: str, check: bool = True):
        return self.runner([self.helm, *args], env=self._env(), check=check)

    def _kubectl(self, *args: str, check: bool = True):
        return self.runner([self.kubectl, *args], env=self._env(), check=check)


def _helm_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
