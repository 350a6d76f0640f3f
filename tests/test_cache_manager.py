import json
from datetime import date

import pytest
import redis

from app.managers.cache_manager import CacheManager


class FakeRedis:
    def __init__(self, fail=False):
        self.store = {}
        self.fail = fail
        self.ttls = {}

    def get(self, key):
        if self.fail:
            raise redis.ConnectionError("down")
        return self.store.get(key)

    def set(self, key, value, ex=None):
        if self.fail:
            raise redis.ConnectionError("down")
        self.store[key] = value
        self.ttls[key] = ex

    def delete(self, key):
        self.store.pop(key, None)

    def scan_iter(self, pattern):
        prefix = pattern.rstrip("*")
        return [k for k in list(self.store) if k.startswith(prefix)]


@pytest.fixture
def fake():
    return FakeRedis()


def test_build_key_with_user():
    cache = CacheManager("reference:", client=FakeRedis(), enabled=True)

    assert cache._build_key("classes", user_id="u1") == "reference:user:u1:classes"
    assert cache._build_key("USD", None, "AUD") == "reference:USD:AUD"


def test_get_or_set_loads_once(fake):
    cache = CacheManager("fx", client=fake, enabled=True)
    calls = []

    def loader():
        calls.append(1)
        return {"rate": 1.5, "asOf": date(2024, 1, 2)}

    first = cache.get_or_set(loader, "USD", "AUD", ttl=60)
    second = cache.get_or_set(loader, "USD", "AUD", ttl=60)

    assert len(calls) == 1
    assert first["rate"] == second["rate"] == 1.5
    assert json.loads(fake.store["fx:USD:AUD"])["asOf"] == "2024-01-02"
    assert fake.ttls["fx:USD:AUD"] == 60


def test_disabled_cache_is_pass_through(fake):
    cache = CacheManager("fx", client=fake, enabled=False)

    assert cache.get_or_set(lambda: 2.0, "USD", "AUD") == 2.0
    assert fake.store == {}
    assert cache.clear() == 0


def test_redis_errors_behave_as_miss():
    cache = CacheManager("fx", client=FakeRedis(fail=True), enabled=True)

    assert cache.get("USD", "AUD") is None
    assert cache.get_or_set(lambda: 0.66, "AUD", "USD") == 0.66


def test_clear_by_prefix(fake):
    cache = CacheManager("reference", client=fake, enabled=True)
    cache.set(["AUD"], "currencies")
    cache.set([1], "exchanges")
    fake.store["fx:USD:AUD"] = "1.5"

    assert cache.clear() == 2
    assert list(fake.store) == ["fx:USD:AUD"]
