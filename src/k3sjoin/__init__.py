"""k3sjoin - cluster-join handshake for k3s nodes"""

__version__ = "0.1.0"
