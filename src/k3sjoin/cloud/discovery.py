"""Coordinator discovery by instance tag"""

from typing import List, Optional

import boto3
import botocore

from k3sjoin.errors import DiscoveryFailed
from k3sjoin.store import BOTO_CONFIG

ADDRESS_FIELDS = {
    "public": "PublicIpAddress",
    "local": "PrivateIpAddress",
}


class TagDiscovery:
    """Finds the control node through the EC2 API.

    Used only when the published endpoint never answered its health check.
    """

    def __init__(
        self,
        client=None,
        region: Optional[str] = None,
        tag_key: str = "Name",
        tag_value: str = "",
        address: str = "public",
        port: int = 6443,
    ):
        if address not in ADDRESS_FIELDS:
            raise ValueError(f"address must be one of {sorted(ADDRESS_FIELDS)}")
        if client is None:
            client = boto3.session.Session(region_name=region or None).client("ec2", config=BOTO_CONFIG)
        self.client = client
        self.tag_key = tag_key
        self.tag_value = tag_value
        self.address = address
        self.port = port

    def find_addresses(self) -> List[str]:
        """Addresses of running instances carrying the coordinator tag"""
        if not self.tag_value:
            raise DiscoveryFailed("No coordinator tag configured for discovery")

        try:
            response = self.client.describe_instances(
                Filters=[
                    {"Name": f"tag:{self.tag_key}", "Values": [self.tag_value]},
                    {"Name": "instance-state-name", "Values": ["running"]},
                ]
            )
        except (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError) as e:
            raise DiscoveryFailed(f"Failed to describe instances: {e}") from e

        field = ADDRESS_FIELDS[self.address]
        addresses = []
        for reservation in response.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                if instance.get(field):
                    addresses.append(instance[field])
        return addresses

    def find_endpoint(self) -> str:
        addresses = self.find_addresses()
        if not addresses:
            raise DiscoveryFailed(
                f"No running instance tagged {self.tag_key}={self.tag_value} has a {self.address} address"
            )
        return f"https://{addresses[0]}:{self.port}"
