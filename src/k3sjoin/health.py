"""Endpoint health probing"""

from typing import Iterable, Optional

import httpx

from k3sjoin.errors import ProbeFailed


class EndpointProbe:
    """HTTP liveness check against the cluster control service"""

    def __init__(
        self,
        path: str = "/healthz",
        healthy_statuses: Iterable[int] = (200,),
        timeout: float = 5.0,
        verify: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.path = path if path.startswith("/") else "/" + path
        self.healthy_statuses = frozenset(healthy_statuses)
        self.timeout = timeout
        self.verify = verify
        self.transport = transport

    def url_for(self, endpoint: str) -> str:
        return endpoint.rstrip("/") + self.path

    def check(self, endpoint: str) -> int:
        """Probe the endpoint, returning the status code or raising ProbeFailed"""
        url = self.url_for(endpoint)

        try:
            with httpx.Client(timeout=self.timeout, verify=self.verify, transport=self.transport) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            raise ProbeFailed(f"Health probe to {url} failed: {e}") from e

        if response.status_code not in self.healthy_statuses:
            raise ProbeFailed(f"Health probe to {url} returned {response.status_code}")

        return response.status_code

    def is_healthy(self, endpoint: str) -> bool:
        """Quick health check"""
        try:
            self.check(endpoint)
            return True
        except ProbeFailed:
            return False
