"""
The WorkQueue is a coalescing queue of reconciliation keys. An item is never
handed to two workers at once, and repeated adds of an item that is already
waiting or being processed collapse into a single pending unit of work.
"""

# Standard
from collections import deque
from typing import Any, Deque, Hashable, Optional, Set, Tuple
import threading

# First Party
import alog

log = alog.use_channel("WRKQ")


class WorkQueue:
    """Coalescing work queue

    Items move through three states, all guarded by a single condition:

    * dirty: the item needs processing. Every item in the queue is dirty.
    * processing: a worker holds the item between get() and done()
    * queued: the item is waiting to be handed out by get()

    An item that is added while processing is only marked dirty. When the
    worker calls done(), a dirty item is put back on the queue so it is
    processed exactly once more, observing state at least as fresh as the add.
    """

    def __init__(self, name: Optional[str] = None):
        """
        Args:
            name:  Optional[str]
                Name used when logging about this queue
        """
        self.name = name or "workqueue"
        self._queue: Deque[Hashable] = deque()
        self._dirty: Set[Hashable] = set()
        self._processing: Set[Hashable] = set()
        self._condition = threading.Condition()
        self._shutting_down = False

    ## Public Interface ########################################################

    def add(self, item: Hashable):
        """Mark an item as needing processing. Idempotent while the item is
        queued or in flight.
        """
        with self._condition:
            if self._shutting_down:
                log.debug2("[%s] Ignoring add of %s after shutdown", self.name, item)
                return
            if item in self._dirty:
                log.debug3("[%s] %s already pending", self.name, item)
                return
            self._dirty.add(item)
            if item in self._processing:
                log.debug3("[%s] %s in flight, marked dirty", self.name, item)
                return
            log.debug2("[%s] Queueing %s", self.name, item)
            self._queue.append(item)
            self._condition.notify()

    def get(self) -> Tuple[Optional[Any], bool]:
        """Block until an item is available or the queue shuts down

        Returns:
            item:  Optional[Any]
                The item to process, or None on shutdown
            shutting_down:  bool
                True if the caller should exit
        """
        with self._condition:
            while not self._queue and not self._shutting_down:
                self._condition.wait()
            if self._shutting_down:
                return None, True
            item = self._queue.popleft()
            self._processing.add(item)
            self._dirty.discard(item)
            log.debug3("[%s] Handing out %s", self.name, item)
            return item, False

    def done(self, item: Hashable):
        """Mark the processing of an item as finished. Must be called exactly
        once for every item returned by get(). If the item was added again while
        in flight it is re-queued.
        """
        with self._condition:
            self._processing.discard(item)
            if item in self._dirty and not self._shutting_down:
                log.debug2("[%s] Re-queueing dirty item %s", self.name, item)
                self._queue.append(item)
                self._condition.notify()

    def shut_down(self):
        """Stop handing out items. Queued items are discarded; items already
        handed out may still be marked done.
        """
        with self._condition:
            log.debug("[%s] Shutting down with %d queued", self.name, len(self._queue))
            self._shutting_down = True
            self._queue.clear()
            self._dirty.clear()
            self._condition.notify_all()

    @property
    def shutting_down(self) -> bool:
        with self._condition:
            return self._shutting_down

    def is_processing(self, item: Hashable) -> bool:
        """Whether the item is currently held by a worker"""
        with self._condition:
            return item in self._processing

    def __len__(self) -> int:
        with self._condition:
            return len(self._queue)
