"""Cluster control service and membership"""

from .k3s import K3sControl
from .membership import KubectlMembership, Node, count_ready

__all__ = [
    "K3sControl",
    "KubectlMembership",
    "Node",
    "count_ready",
]
