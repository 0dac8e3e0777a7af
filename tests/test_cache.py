"""Tests for the descriptor cache."""

import json
from datetime import datetime, timezone

import pytest

from conftest import make_descriptor
from reprise.core.errors import CacheLoadError, CacheSaveError, StoreError
from reprise.descriptors.cache import DescriptorCache

KEY = "package-descriptors-cache"


class BrokenStore:
    """Store whose every operation fails."""

    def get(self, key):
        raise StoreError("read failed")

    def put(self, key, value):
        raise StoreError("write failed")

    def delete(self, key):
        raise StoreError("delete failed")

    def keys(self):
        raise StoreError("list failed")


@pytest.fixture
def cache(store):
    return DescriptorCache(store, KEY)


def test_load_missing_key(cache):
    """Test that a missing key loads as an empty cache."""
    assert cache.load() == {}


def test_save_and_load(cache, store):
    """Test that a saved map loads back equal."""
    first = make_descriptor(version="1.9.1")
    second = make_descriptor(package="vendor-pass", version="1.2.0")
    descriptors = {first.url: first, second.url: second}

    cache.save(descriptors)

    assert cache.load() == descriptors
    blob = json.loads(store.get(KEY))
    assert sorted(blob) == sorted(descriptors)
    assert blob[first.url]["lastVerified"] == "2025-05-20T12:00:00Z"


def test_load_corrupt_json(cache, store):
    """Test that corrupt JSON degrades to an empty cache."""
    store.put(KEY, "{not json")
    assert cache.load() == {}


def test_load_non_object(cache, store):
    """Test that a JSON array degrades to an empty cache."""
    store.put(KEY, "[1, 2, 3]")
    assert cache.load() == {}


def test_load_read_error():
    """Test that a store read failure degrades to an empty cache."""
    assert DescriptorCache(BrokenStore(), KEY).load() == {}


def test_load_drops_invalid_entries(cache, store):
    """Test that entries failing validation are dropped individually."""
    good = make_descriptor()
    moved = make_descriptor(package="vendor-pass")
    store.put(
        KEY,
        json.dumps(
            {
                good.url: good.to_json_dict(),
                "https://vendor.example/bad.deb": {"url": "https://vendor.example/bad.deb"},
                "https://vendor.example/elsewhere.deb": moved.to_json_dict(),
            }
        ),
    )

    assert cache.load() == {good.url: good}


def test_save_failure_raises():
    """Test that a store write failure raises CacheSaveError."""
    cache = DescriptorCache(BrokenStore(), KEY)
    descriptor = make_descriptor()

    with pytest.raises(CacheSaveError, match="write failed"):
        cache.save({descriptor.url: descriptor})


def test_clear(cache, store):
    """Test that clear removes the blob and reports the count."""
    descriptor = make_descriptor()
    cache.save({descriptor.url: descriptor})

    assert cache.clear() == 1
    assert store.get(KEY) is None
    assert cache.load() == {}


def test_stats(cache):
    """Test cache statistics."""
    older = make_descriptor(version="1.0.0", last_verified=datetime(2025, 1, 1, tzinfo=timezone.utc))
    newer = make_descriptor(version="1.1.0", last_verified=datetime(2025, 3, 1, tzinfo=timezone.utc))
    other = make_descriptor(package="vendor-pass")
    cache.save({d.url: d for d in (older, newer, other)})

    stats = cache.stats()

    assert stats.total_entries == 3
    assert stats.total_size_bytes == older.size + newer.size + other.size
    assert stats.oldest_verified == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert stats.newest_verified == datetime(2025, 5, 20, 12, 0, tzinfo=timezone.utc)
    assert stats.packages == {"vendor-mail": 2, "vendor-pass": 1}


def test_stats_empty(cache):
    """Test statistics of an empty cache."""
    stats = cache.stats()
    assert stats.total_entries == 0
    assert stats.oldest_verified is None


def test_stats_corrupt_raises(cache, store):
    """Test that stats reports a corrupt cache instead of hiding it."""
    store.put(KEY, "{not json")
    with pytest.raises(CacheLoadError):
        cache.stats()
