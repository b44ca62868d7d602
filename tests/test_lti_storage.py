"""Unit tests for RedisLaunchDataStorage."""

import json

import pytest

from api.lti import storage as storage_mod


class TestRedisLaunchDataStorage:
    def test_set_and_get_value(self, lti_storage):
        """set_value stores JSON, get_value deserializes it."""
        lti_storage.set_value("test-key", {"foo": "bar"}, exp=60)
        assert lti_storage.get_value("test-key") == {"foo": "bar"}

    def test_get_value_missing_key_returns_none(self, lti_storage):
        assert lti_storage.get_value("nonexistent") is None

    def test_check_value(self, lti_storage):
        lti_storage.set_value("exists", {"v": 1}, exp=60)
        assert lti_storage.check_value("exists") is True
        assert lti_storage.check_value("missing") is False

    def test_key_prefix(self, lti_storage, fake_redis_client):
        """Keys are stored with the 'lti1p3:' prefix in Redis."""
        lti_storage.set_value("mykey", {"v": 1}, exp=60)
        raw = fake_redis_client.get("lti1p3:mykey")
        assert json.loads(raw) == {"v": 1}

    def test_default_ttl_used_when_exp_none(self, lti_storage, fake_redis_client):
        lti_storage.set_value("ttl-test", {"v": 1})
        ttl = fake_redis_client.ttl("lti1p3:ttl-test")
        assert 0 < ttl <= 7200

    def test_pop_value_is_single_use(self, lti_storage):
        """pop_value returns the value once, then the key is gone."""
        lti_storage.set_value("launch_message:abc", {"claims": {}}, exp=60)
        assert lti_storage.pop_value("launch_message:abc") == {"claims": {}}
        assert lti_storage.pop_value("launch_message:abc") is None
        assert lti_storage.check_value("launch_message:abc") is False

    def test_undecodable_value_is_discarded(self, lti_storage, fake_redis_client):
        fake_redis_client.set("lti1p3:garbage", "{not json")
        assert lti_storage.get_value("garbage") is None


class TestStorageSingleton:
    def test_uninitialized_storage_raises(self, monkeypatch):
        monkeypatch.setattr(storage_mod, "_launch_data_storage", None)
        with pytest.raises(RuntimeError, match="not initialized"):
            storage_mod.get_launch_data_storage()

    def test_installed_storage_is_returned(self, installed_storage):
        assert storage_mod.get_launch_data_storage() is installed_storage
