from typing import Protocol


class RateLimiter(Protocol):
    """Request budget per client key; ``allow`` records the hit when it returns True."""

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        ...
