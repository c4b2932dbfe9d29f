from app.lib.cache import TTLCache, cache_keys


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    c = TTLCache(clock=clock)
    c.set("1:a", "value", ttl_seconds=10)
    assert c.get("1:a") == "value"
    clock.now += 11
    assert c.get("1:a") is None
    assert len(c) == 0


def test_clear_tenant_only_touches_its_keys():
    c = TTLCache()
    c.set(cache_keys.analytics_overview(1), {"x": 1})
    c.set(cache_keys.recent_orders(1), [])
    c.set(cache_keys.analytics_overview(12), {"x": 2})
    c.set(cache_keys.tenant_by_subdomain("acme"), 1)

    assert c.clear_tenant(1) == 2
    assert c.get(cache_keys.analytics_overview(12)) == {"x": 2}
    assert c.get(cache_keys.tenant_by_subdomain("acme")) == 1


def test_delete_pattern():
    c = TTLCache()
    c.set("5:products:top", 1)
    c.set("5:products:lowstock", 2)
    c.set("5:orders:recent", 3)
    assert c.delete_pattern(r"^5:products:") == 2
    assert c.get("5:orders:recent") == 3


def test_get_or_set_calls_fetcher_once():
    c = TTLCache()
    calls = []

    def fetch():
        calls.append(1)
        return 42

    assert c.get_or_set("k", fetch) == 42
    assert c.get_or_set("k", fetch) == 42
    assert len(calls) == 1


def test_cleanup_removes_expired():
    clock = FakeClock()
    c = TTLCache(clock=clock)
    c.set("a", 1, ttl_seconds=5)
    c.set("b", 2, ttl_seconds=50)
    clock.now += 10
    assert c.cleanup() == 1
    assert c.get("b") == 2
