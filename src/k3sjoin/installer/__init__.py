"""Application installation for k3sjoin."""

from .bootstrap import ApplicationInstaller, check_prerequisites, required_tools

__all__ = [
    "ApplicationInstaller",
    "check_prerequisites",
    "required_tools",
]
