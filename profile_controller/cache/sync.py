"""
Barrier that resolves once a set of caches has finished its initial list
"""

# Standard
from concurrent.futures import Future, InvalidStateError
from typing import Optional
import threading
import time

# First Party
import alog

# Local
from .resource_cache import ResourceCache

log = alog.use_channel("CSYNC")

# Seconds between checks of the caches
SYNC_POLL_INTERVAL = 0.1


def wait_for_cache_sync(
    *caches: ResourceCache,
    stop_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> "Future[bool]":
    """Start waiting for all the given caches to sync

    Args:
        *caches:  ResourceCache
            The caches that must all report synced
        stop_event:  Optional[threading.Event]
            Setting this abandons the wait
        timeout:  Optional[float]
            Seconds after which the wait is abandoned

    Returns:
        synced:  Future[bool]
            Resolves to True once every cache has synced, or False if the wait
            was stopped or timed out. Cancelling the future abandons the wait.
    """
    future: "Future[bool]" = Future()
    stop_event = stop_event or threading.Event()
    deadline = None if timeout is None else time.monotonic() + timeout

    def _resolve(result: bool):
        try:
            future.set_result(result)
        except InvalidStateError:
            log.debug2("Cache sync wait was cancelled")

    def _wait():
        while not future.cancelled():
            if all(cache.has_synced() for cache in caches):
                log.debug("All %d caches synced", len(caches))
                _resolve(True)
                return
            if stop_event.is_set():
                log.info("Stopped while waiting for caches to sync")
                _resolve(False)
                return
            if deadline is not None and time.monotonic() >= deadline:
                log.warning("Timed out waiting for caches to sync")
                _resolve(False)
                return
            stop_event.wait(SYNC_POLL_INTERVAL)

    threading.Thread(target=_wait, name="cache_sync", daemon=True).start()
    return future
