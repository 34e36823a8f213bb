"""
The RateLimitingQueue adds failed items back with a backoff decided by a rate
limiter
"""

# Standard
from typing import Hashable, Optional

# First Party
import alog

# Local
from .delaying_queue import DelayingQueue
from .rate_limiter import RateLimiterBase, default_controller_rate_limiter

log = alog.use_channel("RLQ")


class RateLimitingQueue(DelayingQueue):
    """DelayingQueue whose re-adds are spaced out by a rate limiter"""

    def __init__(
        self,
        rate_limiter: Optional[RateLimiterBase] = None,
        name: Optional[str] = None,
    ):
        """
        Args:
            rate_limiter:  Optional[RateLimiterBase]
                The limiter deciding requeue delays. Defaults to the
                controller limiter built from the library config.
            name:  Optional[str]
                Name used when logging about this queue
        """
        super().__init__(name=name)
        self.rate_limiter = rate_limiter or default_controller_rate_limiter()

    def add_rate_limited(self, item: Hashable):
        """Add the item back after the delay the limiter assigns to it. Each
        call counts as one failure of the item.
        """
        delay = self.rate_limiter.when(item)
        log.debug2("[%s] Requeueing %s after %.3fs", self.name, item, delay)
        self.add_after(item, delay)

    def forget(self, item: Hashable):
        """Reset the backoff for the item. This does not remove it from the
        queue.
        """
        self.rate_limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return self.rate_limiter.num_requeues(item)
