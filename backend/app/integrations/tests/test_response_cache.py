from app.integrations.cache import ResponseCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_key_ignores_param_order_and_none():
    a = ResponseCache.key("/tickets.json", {"status": "open", "priority": None, "limit": 5})
    b = ResponseCache.key("/tickets.json", {"limit": 5, "status": "open"})
    assert a == b
    assert ResponseCache.key("/tickets.json", {"status": None}) == "/tickets.json"


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("/admins", ["a"])

    clock.now += 59
    assert cache.get("/admins", ttl=60) == ["a"]

    clock.now += 2
    assert cache.get("/admins", ttl=60) is None
    assert len(cache) == 0


def test_invalidate_matching_drops_only_matching_keys():
    cache = ResponseCache()
    cache.set("/tickets.json?status=\"open\"", [1])
    cache.set("/tickets/5.json", {"id": 5})
    cache.set("/users.json", [])

    cache.invalidate_matching("/tickets")

    assert cache.keys() == ["/users.json"]
