"""Shared fixtures and fakes"""

import subprocess

import pytest

from k3sjoin.cluster.membership import Node
from k3sjoin.config.manager import ConfigManager
from k3sjoin.config.settings import load_settings
from k3sjoin.errors import (
    CommandFailed,
    MembershipUnavailable,
    ParameterNotFound,
    StoreUnavailable,
    StoreWriteRejected,
)
from k3sjoin.store import JoinMaterialStore, ParameterStore


class FakeClock:
    """Monotonic clock that only moves when sleep() is called"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class MemoryParameterStore(ParameterStore):
    """Dict-backed parameter store recording every write"""

    def __init__(self, values=None, reject=(), deny_reads=()):
        self.values = dict(values or {})
        self.reject = set(reject)
        self.deny_reads = set(deny_reads)
        self.writes = []
        self.reads = []

    def get(self, name):
        self.reads.append(name)
        if name in self.deny_reads:
            raise StoreUnavailable(f"Failed to read {name}: AccessDeniedException")
        if name not in self.values:
            raise ParameterNotFound(f"Parameter not found: {name}")
        return self.values[name]

    def put(self, name, value, overwrite=True):
        if name in self.reject:
            raise StoreWriteRejected(f"Failed to write {name}: AccessDeniedException")
        if not overwrite and name in self.values:
            raise StoreWriteRejected(f"Parameter already exists: {name}")
        self.writes.append((name, value))
        self.values[name] = value


class FakeMembership:
    """Returns a scripted sequence of node lists, repeating the last one"""

    def __init__(self, *snapshots):
        self.snapshots = list(snapshots)
        self.calls = 0

    def list_nodes(self):
        self.calls += 1
        snapshot = self.snapshots[min(self.calls, len(self.snapshots)) - 1]
        if isinstance(snapshot, Exception):
            raise snapshot
        return snapshot


class FakeControl:
    """Stands in for K3sControl"""

    def __init__(self, secret="tok-123", join_error=None):
        self.secret = secret
        self.join_error = join_error
        self.started = 0
        self.joins = []

    def start_control_service(self):
        self.started += 1

    def read_join_secret(self):
        return self.secret

    def join(self, endpoint, secret):
        self.joins.append((endpoint, secret))
        if self.join_error is not None:
            raise self.join_error


class FakeMetadata:
    def __init__(self, local="10.0.0.5", public="3.3.3.3"):
        self.addresses = {"local": local, "public": public}

    def address(self, kind):
        return self.addresses[kind]


class FakeProbe:
    """Health probe whose answer per endpoint is scripted"""

    def __init__(self, healthy=(), healthy_after=None):
        self.healthy = set(healthy)
        self.healthy_after = dict(healthy_after or {})
        self.probes = []

    def check(self, endpoint):
        from k3sjoin.errors import ProbeFailed

        self.probes.append(endpoint)
        remaining = self.healthy_after.get(endpoint)
        if remaining is not None:
            if remaining > 0:
                self.healthy_after[endpoint] = remaining - 1
                raise ProbeFailed(f"{endpoint} not healthy yet")
            return 200
        if endpoint in self.healthy:
            return 200
        raise ProbeFailed(f"{endpoint} not healthy")


class FakeDiscovery:
    def __init__(self, endpoint=None, error=None):
        self.endpoint = endpoint
        self.error = error
        self.lookups = 0

    def find_endpoint(self):
        self.lookups += 1
        if self.error is not None:
            raise self.error
        return self.endpoint


class FakeRunner:
    """Records commands; returns scripted results keyed by argv prefix"""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []

    def __call__(self, cmd, cwd=None, check=True, env=None, input=None):
        self.calls.append({"cmd": list(cmd), "env": env, "input": input, "check": check})
        returncode, stdout, stderr = 0, "", ""
        for prefix, result in self.results.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                if callable(result):
                    result = result()
                returncode, stdout, stderr = result
                break
        if check and returncode != 0:
            raise CommandFailed(list(cmd), returncode, stderr)
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)

    def commands(self):
        return [call["cmd"] for call in self.calls]


def ready_nodes(ready, not_ready=0):
    nodes = [Node(f"node-{i}", "Ready", "<none>", "1m", "v1.30.4+k3s1") for i in range(ready)]
    nodes += [Node(f"pending-{i}", "NotReady", "<none>", "1m", "v1.30.4+k3s1") for i in range(not_ready)]
    return nodes


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryParameterStore()


@pytest.fixture
def materials(store):
    return JoinMaterialStore(store)


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Default settings with no environment or file influence"""
    for var in ("WORKER_NODE_COUNT", "EXPECTED_NODES", "AWS_REGION", "K3SJOIN_REGION", "K3SJOIN_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return load_settings(ConfigManager(tmp_path / "missing.yaml").load())


@pytest.fixture
def unavailable():
    return MembershipUnavailable("The connection to the server 127.0.0.1:6443 was refused")
