"""EC2 instance metadata (IMDSv2)"""

from typing import Optional

import httpx

from k3sjoin.errors import MetadataError

IMDS_URL = "http://169.254.169.254"
TOKEN_TTL_SECONDS = 21600


class InstanceMetadata:
    """Read-only view of this instance's identity and addresses"""

    def __init__(
        self,
        base_url: str = IMDS_URL,
        timeout: float = 2.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._token: Optional[str] = None

    def local_ipv4(self) -> str:
        return self._get("meta-data/local-ipv4")

    def public_ipv4(self) -> str:
        return self._get("meta-data/public-ipv4")

    def instance_id(self) -> str:
        return self._get("meta-data/instance-id")

    def region(self) -> str:
        return self._get("meta-data/placement/region")

    def address(self, kind: str) -> str:
        """Return the local or public IPv4 address"""
        if kind == "public":
            return self.public_ipv4()
        if kind == "local":
            return self.local_ipv4()
        raise MetadataError(f"Unknown address kind: {kind}")

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def _token_header(self) -> dict:
        if self._token is None:
            try:
                with self._client() as client:
                    response = client.put(
                        f"{self.base_url}/latest/api/token",
                        headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_SECONDS)},
                    )
            except httpx.HTTPError as e:
                raise MetadataError(f"Instance metadata service unreachable: {e}") from e

            if response.status_code != 200 or not response.text:
                raise MetadataError(f"Failed to obtain metadata token: HTTP {response.status_code}")
            self._token = response.text.strip()

        return {"X-aws-ec2-metadata-token": self._token}

    def _get(self, path: str) -> str:
        url = f"{self.base_url}/latest/{path}"
        headers = self._token_header()

        try:
            with self._client() as client:
                response = client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise MetadataError(f"Failed to read {path}: {e}") from e

        if response.status_code == 404:
            raise MetadataError(f"Metadata not available: {path}")
        elif response.status_code >= 400:
            raise MetadataError(f"Metadata error {response.status_code} for {path}")

        value = response.text.strip()
        if not value:
            raise MetadataError(f"Metadata value is empty: {path}")
        return value
