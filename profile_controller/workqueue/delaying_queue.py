"""
The DelayingQueue extends the WorkQueue with the ability to add an item after a
delay. Scheduled adds are run by a TimerThread owned by the queue.
"""

# Standard
from datetime import datetime, timedelta
from typing import Dict, Hashable, Optional
import threading

# First Party
import alog

# Local
from ..threads import TimerEvent, TimerThread
from .queue import WorkQueue

log = alog.use_channel("DLYQ")


class DelayingQueue(WorkQueue):
    """WorkQueue with delayed adds. If an item is scheduled more than once
    before its delay elapses, only the earliest schedule is kept.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name=name)
        self._timer = TimerThread(name=f"{self.name}_timer")
        self._waiting: Dict[Hashable, TimerEvent] = {}
        self._waiting_lock = threading.Lock()
        self._timer.start_thread()

    def add_after(self, item: Hashable, delay: float):
        """Add the item once delay seconds have passed

        Args:
            item:  Hashable
                The item to add
            delay:  float
                Seconds to wait. Non-positive values add immediately
        """
        if self.shutting_down:
            return
        if delay <= 0:
            self.add(item)
            return

        ready_time = datetime.now() + timedelta(seconds=delay)
        with self._waiting_lock:
            existing = self._waiting.get(item)
            if existing is not None and not existing.stale:
                if existing.time <= ready_time:
                    log.debug3("[%s] %s already scheduled sooner", self.name, item)
                    return
                existing.cancel()

            log.debug2("[%s] Scheduling %s in %.3fs", self.name, item, delay)
            event = self._timer.put_event(ready_time, self._add_waiting, item)
            if event is not None:
                self._waiting[item] = event

    def shut_down(self):
        """Shut down the queue and stop the timer. Pending delayed adds are
        discarded.
        """
        super().shut_down()
        self._timer.stop_thread()
        with self._waiting_lock:
            for event in self._waiting.values():
                event.cancel()
            self._waiting.clear()

    def num_waiting(self) -> int:
        """Number of items scheduled but not yet added"""
        with self._waiting_lock:
            return len(self._waiting)

    ## Implementation Details ##################################################

    def _add_waiting(self, item: Hashable):
        with self._waiting_lock:
            self._waiting.pop(item, None)
        self.add(item)
