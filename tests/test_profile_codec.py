import json

import pytest

from matcher.profiles import Profile, ProfileRegistry, decode_registry, encode_registry


def sample_registry():
    return ProfileRegistry(
        profiles=[
            Profile(id="a1", name="Ada", high_score=120, total_points=200, games_played=2),
            Profile(id="g2", name="Grace"),
        ],
        active_id="g2",
    )


def test_empty_registry_round_trips():
    registry = ProfileRegistry()
    assert decode_registry(encode_registry(registry)) == registry


def test_populated_registry_round_trips():
    registry = sample_registry()
    decoded = decode_registry(encode_registry(registry))

    assert decoded == registry
    assert [profile.id for profile in decoded.profiles] == ["a1", "g2"]
    assert decoded.active_id == "g2"


def test_blob_is_plain_json_records():
    payload = json.loads(encode_registry(sample_registry()))

    assert payload["version"] == 1
    assert payload["active_id"] == "g2"
    assert set(payload["profiles"][0]) == {"id", "name", "high_score", "total_points", "games_played"}


@pytest.mark.parametrize(
    "blob",
    [
        None,
        b"",
        b"   ",
        b"not json",
        b"\xff\xfe",
        b'{"profiles": [{"id": "a", "name": ""}]}',
        b'{"profiles": [{"id": "a", "name": "Ada", "high_score": -1}]}',
        b'{"profiles": [{"id": "a", "name": "Ada"}, {"id": "a", "name": "Bob"}]}',
    ],
)
def test_unreadable_blobs_decode_to_empty_registry(blob):
    registry = decode_registry(blob)
    assert registry.profiles == []
    assert registry.active_id is None


def test_dangling_active_id_is_dropped():
    registry = decode_registry(b'{"profiles": [{"id": "a", "name": "Ada"}], "active_id": "zz"}')

    assert len(registry.profiles) == 1
    assert registry.active_id is None
