"""Tests for join material records"""

import json

import pytest

from k3sjoin.material import JoinMaterial, generation_for, mask


class TestJoinMaterial:
    """Test JoinMaterial"""

    def test_generation_is_deterministic(self):
        first = JoinMaterial.create("https://10.0.0.5:6443", "tok-123")
        second = JoinMaterial.create("https://10.0.0.5:6443", "tok-123")
        assert first == second
        assert first.generation == generation_for("https://10.0.0.5:6443", "tok-123")

    def test_generation_changes_with_either_field(self):
        base = JoinMaterial.create("https://10.0.0.5:6443", "tok-123")
        assert JoinMaterial.create("https://10.0.0.6:6443", "tok-123").generation != base.generation
        assert JoinMaterial.create("https://10.0.0.5:6443", "tok-456").generation != base.generation

    def test_json_round_trip(self):
        material = JoinMaterial.create("https://10.0.0.5:6443", "tok-123")
        assert JoinMaterial.from_json(material.to_json()) == material

    def test_complete(self):
        assert JoinMaterial("https://10.0.0.5:6443", "tok-123").complete
        assert not JoinMaterial("https://10.0.0.5:6443", "").complete
        assert not JoinMaterial("", "tok-123").complete

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            json.dumps({"endpoint": "https://10.0.0.5:6443", "secret": "tok-123"}),
            json.dumps({"generation": "abc", "endpoint": "https://10.0.0.5:6443", "secret": "tok-123"}),
        ],
    )
    def test_malformed_records_rejected(self, raw):
        with pytest.raises(ValueError):
            JoinMaterial.from_json(raw)

    def test_mixed_generation_rejected(self):
        old = JoinMaterial.create("https://10.0.0.5:6443", "tok-old")
        data = json.loads(old.to_json())
        data["secret"] = "tok-new"
        with pytest.raises(ValueError):
            JoinMaterial.from_json(json.dumps(data))

    def test_repr_hides_secret(self):
        material = JoinMaterial.create("https://10.0.0.5:6443", "tok-123")
        assert "tok-123" not in repr(material)


def test_mask():
    assert mask("") == ""
    assert mask("abc") == "***"
    assert mask("K10abcdef1234") == "*********1234"
