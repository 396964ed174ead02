"""Join material published by the coordinator"""

import hashlib
import json
from dataclasses import dataclass


def generation_for(endpoint: str, secret: str) -> str:
    """Deterministic generation id for an endpoint/secret pair"""
    digest = hashlib.sha256(f"{endpoint}\n{secret}".encode()).hexdigest()
    return digest[:16]


@dataclass(frozen=True)
class JoinMaterial:
    """Endpoint and secret a participant needs to join the cluster.

    Both fields travel together in one record so that a participant never
    combines values written by two different coordinator bootstraps.
    """

    endpoint: str
    secret: str
    generation: str = ""

    @classmethod
    def create(cls, endpoint: str, secret: str) -> "JoinMaterial":
        return cls(endpoint=endpoint, secret=secret, generation=generation_for(endpoint, secret))

    @property
    def complete(self) -> bool:
        return bool(self.endpoint) and bool(self.secret)

    def to_json(self) -> str:
        return json.dumps(
            {"generation": self.generation, "endpoint": self.endpoint, "secret": self.secret},
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str) -> "JoinMaterial":
        """Parse a record written by to_json, raising ValueError if malformed"""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"join material is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("join material must be a JSON object")

        missing = [k for k in ("generation", "endpoint", "secret") if not isinstance(data.get(k), str)]
        if missing:
            raise ValueError(f"join material is missing fields: {', '.join(missing)}")

        material = cls(endpoint=data["endpoint"], secret=data["secret"], generation=data["generation"])
        if material.generation != generation_for(material.endpoint, material.secret):
            raise ValueError("join material generation does not match its contents")
        return material

    def __repr__(self) -> str:
        return f"JoinMaterial(endpoint={self.endpoint!r}, secret='***', generation={self.generation!r})"


def mask(secret: str) -> str:
    """Hide all but the last four characters of a secret"""
    if not secret:
        return ""
    if len(secret) <= 4:
        return "*" * len(secret)
    return "*" * (len(secret) - 4) + secret[-4:]
