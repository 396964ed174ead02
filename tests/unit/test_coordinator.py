"""Tests for the control node bootstrap"""

import pytest

from k3sjoin.coordinator import Coordinator
from k3sjoin.errors import FatalError, MembershipTimeout, StoreWriteRejected
from k3sjoin.material import JoinMaterial
from k3sjoin.store import JoinMaterialStore
from tests.conftest import FakeControl, FakeMembership, FakeMetadata, MemoryParameterStore, ready_nodes


def make_coordinator(settings, clock, membership, store=None, control=None, **kwargs):
    store = store if store is not None else MemoryParameterStore()
    return Coordinator(
        materials=JoinMaterialStore(store),
        control=control or FakeControl(),
        membership=membership,
        metadata=FakeMetadata(),
        settings=settings.coordinator,
        clock=clock,
        sleep=clock.sleep,
        **kwargs,
    )


class TestBootstrap:
    """Test the full bootstrap sequence"""

    def test_bootstrap_publishes_and_waits(self, settings, clock):
        store = MemoryParameterStore()
        control = FakeControl(secret="tok-123")
        membership = FakeMembership(ready_nodes(1), ready_nodes(1, 1), ready_nodes(2))
        node = make_coordinator(settings, clock, membership, store=store, control=control)

        result = node.bootstrap()

        assert control.started == 1
        assert store.values["/k3s/join-token"] == "tok-123"
        assert store.values["/k3s/url"] == "https://10.0.0.5:6443"
        assert result.material == JoinMaterial.create("https://10.0.0.5:6443", "tok-123")
        assert result.ready_nodes == 2
        assert membership.calls == 3
        assert result.elapsed == 60

    def test_public_advertise_address(self, settings, clock):
        store = MemoryParameterStore()
        node = make_coordinator(settings, clock, FakeMembership(ready_nodes(2)), store=store, advertise="public")
        node.bootstrap()
        assert store.values["/k3s/url"] == "https://3.3.3.3:6443"

    def test_after_ready_runs_once_cluster_is_complete(self, settings, clock):
        calls = []
        membership = FakeMembership(ready_nodes(1), ready_nodes(2))
        node = make_coordinator(
            settings, clock, membership, after_ready=lambda: calls.append(membership.calls)
        )
        node.bootstrap()
        assert calls == [2]

    def test_rejected_write_is_fatal(self, settings, clock):
        store = MemoryParameterStore(reject={"/k3s/join-token"})
        membership = FakeMembership(ready_nodes(2))
        node = make_coordinator(settings, clock, membership, store=store)

        with pytest.raises(StoreWriteRejected):
            node.bootstrap()
        assert membership.calls == 0

    def test_rejected_record_write_still_completes(self, settings, clock):
        store = MemoryParameterStore(reject={"/k3s/join-material"})
        membership = FakeMembership(ready_nodes(2))
        node = make_coordinator(settings, clock, membership, store=store)

        result = node.bootstrap()

        assert store.values == {"/k3s/join-token": "tok-123", "/k3s/url": "https://10.0.0.5:6443"}
        assert result.ready_nodes == 2
        assert membership.calls == 1

    def test_empty_secret_is_fatal(self, settings, clock):
        node = make_coordinator(settings, clock, FakeMembership(ready_nodes(2)), control=FakeControl(secret=""))
        with pytest.raises(FatalError):
            node.bootstrap()


class TestPublish:
    """Test publishing join material"""

    def test_republish_same_values(self, settings, clock):
        store = MemoryParameterStore()
        node = make_coordinator(settings, clock, FakeMembership(), store=store)

        first = node.publish("tok-123", "https://10.0.0.5:6443")
        snapshot = dict(store.values)
        second = node.publish("tok-123", "https://10.0.0.5:6443")

        assert first == second
        assert store.values == snapshot


class TestWaitForMembers:
    """Test the membership poll"""

    @pytest.mark.parametrize("workers", [0, 1, 2, 5])
    def test_succeeds_at_exactly_expected(self, settings, clock, workers):
        expected = workers + 1
        membership = FakeMembership(*[ready_nodes(n) for n in range(expected + 1)])
        node = make_coordinator(settings, clock, membership)

        result = node.wait_for_members(expected)

        assert result.value == expected
        assert membership.calls == expected + 1

    @pytest.mark.parametrize("workers", [1, 2, 5])
    def test_times_out_when_fewer_ready(self, settings, clock, workers):
        expected = workers + 1
        membership = FakeMembership(ready_nodes(expected - 1, 1))
        node = make_coordinator(settings, clock, membership)

        with pytest.raises(MembershipTimeout) as excinfo:
            node.wait_for_members(expected)

        assert excinfo.value.ready == expected - 1
        assert clock.now == settings.coordinator.membership_timeout

    def test_more_ready_than_expected_does_not_succeed(self, settings, clock):
        node = make_coordinator(settings, clock, FakeMembership(ready_nodes(4)))
        with pytest.raises(MembershipTimeout):
            node.wait_for_members(3)

    def test_only_self_ready_with_three_expected(self, settings, clock):
        settings.coordinator.expected_nodes = 3
        node = make_coordinator(settings, clock, FakeMembership(ready_nodes(1)))

        with pytest.raises(MembershipTimeout, match="only 1 of 3 nodes Ready after 5m 0s"):
            node.bootstrap()
        assert clock.now == 300

    def test_membership_errors_are_retried(self, settings, clock, unavailable):
        membership = FakeMembership(unavailable, unavailable, ready_nodes(2))
        node = make_coordinator(settings, clock, membership)
        assert node.wait_for_members(2).value == 2
