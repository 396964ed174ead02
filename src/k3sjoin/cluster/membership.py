"""Cluster membership via kubectl"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from k3sjoin.commands import run_command
from k3sjoin.errors import CommandFailed, MembershipUnavailable


@dataclass(frozen=True)
class Node:
    """A row of `kubectl get nodes`"""

    name: str
    status: str
    roles: str = ""
    age: str = ""
    version: str = ""

    def has_condition(self, condition: str) -> bool:
        # "Ready,SchedulingDisabled" carries two conditions; "NotReady" is not "Ready"
        return condition in self.status.split(",")


def parse_nodes(output: str) -> List[Node]:
    """Parse `kubectl get nodes --no-headers` output"""
    nodes = []
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 2:
            continue
        fields += [""] * (5 - len(fields))
        nodes.append(Node(*fields[:5]))
    return nodes


def count_ready(nodes: Iterable[Node], ready_status: str = "Ready") -> int:
    return sum(1 for node in nodes if node.has_condition(ready_status))


class KubectlMembership:
    """Lists cluster nodes with kubectl"""

    def __init__(
        self,
        kubectl: str = "kubectl",
        kubeconfig: Optional[str] = None,
        runner: Callable = run_command,
    ):
        self.kubectl = kubectl
        self.kubeconfig = kubeconfig
        self.runner = runner

    def list_nodes(self) -> List[Node]:
        env = {"KUBECONFIG": self.kubeconfig} if self.kubeconfig else None
        try:
            result = self.runner([self.kubectl, "get", "nodes", "--no-headers"], check=False, env=env)
        except CommandFailed as e:
            raise MembershipUnavailable(str(e)) from e

        if result.returncode != 0:
            raise MembershipUnavailable(
                f"kubectl get nodes failed with code {result.returncode}: {result.stderr.strip()}"
            )

        return parse_nodes(result.stdout)
