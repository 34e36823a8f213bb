"""
Rate limiters decide how long a failed item waits before it is handed out
again
"""

# Standard
from typing import Dict, Hashable
import abc
import threading
import time

# First Party
import alog

# Local
from .. import config

log = alog.use_channel("RTLMT")


class RateLimiterBase(abc.ABC):
    """Interface for all rate limiters"""

    @abc.abstractmethod
    def when(self, item: Hashable) -> float:
        """Get the number of seconds the item should wait before being re-added.
        Calling this counts as a failure of the item.
        """

    @abc.abstractmethod
    def forget(self, item: Hashable):
        """Stop tracking the item, resetting any backoff"""

    @abc.abstractmethod
    def num_requeues(self, item: Hashable) -> int:
        """Number of failures recorded for the item since it was last forgotten"""


class ItemExponentialFailureRateLimiter(RateLimiterBase):
    """Per-item exponential backoff: base_delay * 2^failures, capped at
    max_delay
    """

    # Past this many failures the delay is max_delay for any sane base_delay
    _MAX_EXPONENT = 62

    def __init__(self, base_delay: float, max_delay: float):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._failures: Dict[Hashable, int] = {}
        self._lock = threading.Lock()

    def when(self, item):
        with self._lock:
            exponent = self._failures.get(item, 0)
            self._failures[item] = exponent + 1
        if exponent > self._MAX_EXPONENT:
            return self.max_delay
        return min(self.base_delay * (2**exponent), self.max_delay)

    def forget(self, item):
        with self._lock:
            self._failures.pop(item, None)

    def num_requeues(self, item):
        with self._lock:
            return self._failures.get(item, 0)


class BucketRateLimiter(RateLimiterBase):
    """Overall token bucket shared by all items. It limits how fast requeues
    can be issued in aggregate and has no per-item state.
    """

    def __init__(self, qps: float, burst: int):
        self.qps = qps
        self.burst = burst
        self._tokens = float(burst)
        self._last = time.monotonic()
        self._lock = threading.Lock()

    def when(self, item):
        with self._lock:
            now = time.monotonic()
            self._tokens = min(
                float(self.burst), self._tokens + (now - self._last) * self.qps
            )
            self._last = now
            self._tokens -= 1
            if self._tokens >= 0 or not self.qps:
                return 0.0
            return -self._tokens / self.qps

    def forget(self, item):
        pass

    def num_requeues(self, item):
        return 0


class MaxOfRateLimiter(RateLimiterBase):
    """Combines limiters by taking the worst case of all of them"""

    def __init__(self, *limiters: RateLimiterBase):
        assert limiters, "MaxOfRateLimiter needs at least one limiter"
        self.limiters = limiters

    def when(self, item):
        return max(limiter.when(item) for limiter in self.limiters)

    def forget(self, item):
        for limiter in self.limiters:
            limiter.forget(item)

    def num_requeues(self, item):
        return max(limiter.num_requeues(item) for limiter in self.limiters)


def default_controller_rate_limiter() -> RateLimiterBase:
    """Build the limiter used by controllers from the library config: per-item
    exponential backoff combined with an overall token bucket
    """
    log.debug2(
        "Building rate limiter with base %s max %s qps %s burst %s",
        config.workqueue.base_delay,
        config.workqueue.max_delay,
        config.workqueue.qps,
        config.workqueue.burst,
    )
    return MaxOfRateLimiter(
        ItemExponentialFailureRateLimiter(
            base_delay=config.workqueue.base_delay,
            max_delay=config.workqueue.max_delay,
        ),
        BucketRateLimiter(qps=config.workqueue.qps, burst=config.workqueue.burst),
    )
