from types import SimpleNamespace

from timefly.infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from timefly.infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter


def test_memory_rate_limiter_allows_then_blocks():
    rl = InMemoryRateLimiter()
    key = "k1"
    assert rl.allow(key, max_requests=2, window_seconds=60) is True
    assert rl.allow(key, max_requests=2, window_seconds=60) is True
    assert rl.allow(key, max_requests=2, window_seconds=60) is False
    assert rl.allow("k2", max_requests=2, window_seconds=60) is True


def test_memory_rate_limiter_window_expires(monkeypatch):
    from timefly.infrastructure.rate_limit import memory_rate_limiter as mod

    clock = [1000.0]
    monkeypatch.setattr(mod, "time", SimpleNamespace(time=lambda: clock[0]))
    rl = InMemoryRateLimiter()
    assert rl.allow("k", 1, 60) is True
    assert rl.allow("k", 1, 60) is False
    clock[0] += 61
    assert rl.allow("k", 1, 60) is True


class FakePipe:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def incr(self, k, n):
        self.ops.append(("incr", k, n))
        return self

    def expire(self, k, s, nx=False):
        self.ops.append(("expire", k, s))
        return self

    def execute(self):
        results = []
        for op in self.ops:
            if op[0] == "incr":
                self.client.store[op[1]] = self.client.store.get(op[1], 0) + op[2]
                results.append(self.client.store[op[1]])
            else:
                self.client.ttl[op[1]] = op[2]
                results.append(True)
        return results


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttl = {}

    def pipeline(self):
        return FakePipe(self)


def test_redis_rate_limiter_with_fake():
    client = FakeRedis()
    rl = RedisRateLimiter(client=client)

    assert rl.allow("k1", 2, 60) is True
    assert rl.allow("k1", 2, 60) is True
    assert rl.allow("k1", 2, 60) is False
    assert client.ttl == {"timefly:rl:k1:60": 60}


def test_redis_rate_limiter_from_url(monkeypatch):
    from timefly.infrastructure.rate_limit import redis_rate_limiter as mod

    monkeypatch.setattr(mod.redis.Redis, "from_url", classmethod(lambda cls, url: FakeRedis()))
    rl = mod.RedisRateLimiter(url="redis://fake")
    assert rl.allow("k", 1, 60) is True
    assert rl.allow("k", 1, 60) is False
