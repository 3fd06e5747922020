from app.portal.throttle import RateLimiter, TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_rate_limiter_sliding_window():
    clock = FakeClock()
    limiter = RateLimiter(2, 60, clock=clock)
    assert limiter.check("u1").allowed
    assert limiter.check("u1").allowed

    blocked = limiter.check("u1")
    assert not blocked.allowed
    assert blocked.retry_after == 60

    # other identifiers are independent
    assert limiter.check("u2").allowed

    clock.now += 60
    assert limiter.check("u1").allowed


def test_rate_limiter_cooldown_outlasts_window():
    clock = FakeClock()
    limiter = RateLimiter(1, 60, cooldown_seconds=300, clock=clock)
    assert limiter.check("u1").allowed
    first = limiter.check("u1")
    assert not first.allowed
    assert "Maximum 1 requests per 60 seconds" in first.message

    clock.now += 120
    still = limiter.check("u1")
    assert not still.allowed
    assert still.retry_after == 180

    clock.now += 180
    assert limiter.check("u1").allowed


def test_rate_limiter_reset_and_evict():
    clock = FakeClock()
    limiter = RateLimiter(1, 10, clock=clock)
    limiter.check("a")
    limiter.check("b")
    limiter.reset("a")
    assert limiter.check("a").allowed

    clock.now += 11
    assert limiter.evict_idle() == 2
    assert limiter.evict_idle() == 0


def test_ttl_cache_expiry_and_loader():
    clock = FakeClock()
    cache = TTLCache(300, clock=clock)
    calls = []

    def load():
        calls.append(clock.now)
        return {"products": len(calls)}

    assert cache.get_or_load("portal", load) == {"products": 1}
    clock.now += 299
    assert cache.get_or_load("portal", load) == {"products": 1}
    clock.now += 1
    assert cache.get_or_load("portal", load) == {"products": 2}
    assert len(calls) == 2


def test_ttl_cache_invalidate():
    cache = TTLCache(300, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2
    cache.invalidate()
    assert cache.get("b", "gone") == "gone"
