import redis

from ...application.ports.rate_limiter import RateLimiter


class RedisRateLimiter(RateLimiter):
    """Fixed-window limiter shared by every worker that points at the same Redis."""

    def __init__(self, url: str = None, prefix: str = "timefly:rl:", client=None) -> None:
        if client is None and not url:
            raise ValueError("RedisRateLimiter needs a url or a client")
        self.client = client if client is not None else redis.Redis.from_url(url)
        self.prefix = prefix

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = f"{self.prefix}{key}:{window_seconds}"
        # INCR with EXPIRE for fixed window
        pipe = self.client.pipeline()
        pipe.incr(rk, 1)
        pipe.expire(rk, window_seconds, nx=True)
        count, _ = pipe.execute()
        return int(count) <= int(max_requests)
