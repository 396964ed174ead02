"""Shared parameter store access"""

from typing import Optional

import boto3
import botocore
from botocore.config import Config
from rich.console import Console

from k3sjoin.errors import ParameterNotFound, RetryableError, StoreUnavailable, StoreWriteRejected
from k3sjoin.material import JoinMaterial

console = Console()

BOTO_CONFIG = Config(retries={"max_attempts": 5, "mode": "standard"})


class ParameterStore:
    """Named string values, strongly consistent, last write wins"""

    def get(self, name: str) -> str:
        raise NotImplementedError

    def put(self, name: str, value: str, overwrite: bool = True) -> None:
        raise NotImplementedError


class SSMParameterStore(ParameterStore):
    """AWS Systems Manager Parameter Store"""

    def __init__(self, client=None, region: Optional[str] = None, parameter_type: str = "String"):
        if client is None:
            client = boto3.session.Session(region_name=region or None).client("ssm", config=BOTO_CONFIG)
        self.client = client
        self.parameter_type = parameter_type

    def get(self, name: str) -> str:
        try:
            response = self.client.get_parameter(Name=name, WithDecryption=True)
        except botocore.exceptions.ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code == "ParameterNotFound":
                raise ParameterNotFound(f"Parameter not found: {name}") from e
            msg = e.response.get("Error", {}).get("Message", str(e))
            raise StoreUnavailable(f"Failed to read {name}: {code} {msg}") from e
        except botocore.exceptions.BotoCoreError as e:
            raise StoreUnavailable(f"Failed to read {name}: {e}") from e

        return response["Parameter"]["Value"]

    def put(self, name: str, value: str, overwrite: bool = True) -> None:
        try:
            self.client.put_parameter(
                Name=name,
                Value=value,
                Type=self.parameter_type,
                Overwrite=overwrite,
            )
        except botocore.exceptions.ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            msg = e.response.get("Error", {}).get("Message", str(e))
            raise StoreWriteRejected(f"Failed to write {name}: {code} {msg}") from e
        except botocore.exceptions.BotoCoreError as e:
            raise StoreWriteRejected(f"Failed to write {name}: {e}") from e


class JoinMaterialStore:
    """Reads and writes join material under the configured key names.

    The coordinator writes the two individual keys (secret first, then
    endpoint) and then the versioned record. The record is optional: a
    rejected record write only warns, and readers fall back to the
    individual keys whenever the record cannot be read or parsed.
    """

    def __init__(
        self,
        store: ParameterStore,
        secret_key: str = "/k3s/join-token",
        endpoint_key: str = "/k3s/url",
        record_key: str = "/k3s/join-material",
    ):
        self.store = store
        self.secret_key = secret_key
        self.endpoint_key = endpoint_key
        self.record_key = record_key

    def publish(self, material: JoinMaterial) -> bool:
        """Write the join material; returns whether the record was written"""
        self.store.put(self.secret_key, material.secret, overwrite=True)
        self.store.put(self.endpoint_key, material.endpoint, overwrite=True)
        if not self.record_key:
            return False

        try:
            self.store.put(self.record_key, material.to_json(), overwrite=True)
        except StoreWriteRejected as e:
            console.print(
                f"[yellow][WARN] Record not written, readers will use "
                f"{self.endpoint_key} and {self.secret_key}: {e}[/yellow]"
            )
            return False
        return True

    def read(self) -> JoinMaterial:
        """Return whatever join material is currently published.

        The result may be incomplete when only one of the legacy keys exists.
        Raises ParameterNotFound when nothing is published yet.
        """
        if self.record_key:
            record = self._read_record()
            if record is not None:
                return record

        endpoint = self._get_optional(self.endpoint_key)
        secret = self._get_optional(self.secret_key)
        if not endpoint and not secret:
            raise ParameterNotFound(f"Neither {self.endpoint_key} nor {self.secret_key} is set")
        return JoinMaterial(endpoint=endpoint, secret=secret)

    def read_secret(self) -> str:
        return self._get_optional(self.secret_key)

    def _read_record(self) -> Optional[JoinMaterial]:
        try:
            raw = self.store.get(self.record_key)
        except RetryableError:
            # Not found, or not readable under a policy that only grants the individual keys
            return None

        try:
            return JoinMaterial.from_json(raw)
        except ValueError as e:
            console.print(f"[yellow][WARN] Ignoring unreadable record at {self.record_key}: {e}[/yellow]")
            return None

    def _get_optional(self, name: str) -> str:
        try:
            return self.store.get(name).strip()
        except ParameterNotFound:
            return ""
