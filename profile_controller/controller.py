"""
The Controller wires caches, triage, the work queue and a reconciler together
and runs the pool of workers that drain the queue
"""

# Standard
from typing import Hashable, List, Optional
import threading

# First Party
import alog

# Local
from . import config
from .cache import ResourceCache, wait_for_cache_sync
from .events import NullEventRecorder
from .exceptions import ControllerError, MalformedItemError, TransientError
from .reconcile import Reconciler
from .threads import WorkerThread
from .triage import EventTriage
from .workqueue import RateLimitingQueue

log = alog.use_channel("CTRLR")


class Controller:  # pylint: disable=too-many-instance-attributes
    """A Controller reconciles one parent kind and its owned children.

    Every parent change, and every change to a child it controls, puts the
    parent's key on a rate-limited coalescing queue. Workers take keys off the
    queue and run the reconciler. Only the workers decide whether a key is
    forgotten or requeued with backoff.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        parent_cache: ResourceCache,
        child_cache: ResourceCache,
        reconciler: Reconciler,
        recorder: Optional[NullEventRecorder] = None,
        queue: Optional[RateLimitingQueue] = None,
        cluster_scoped_parent: bool = False,
    ):
        """
        Args:
            parent_cache:  ResourceCache
                Cache of the parent kind
            child_cache:  ResourceCache
                Cache of the child kind
            reconciler:  Reconciler
                The sync algorithm run for every key
            recorder:  Optional[NullEventRecorder]
                Event sink started and stopped with the controller
            queue:  Optional[RateLimitingQueue]
                The work queue. Defaults to one named by workqueue.name
            cluster_scoped_parent:  bool
                Whether the parent kind is cluster-scoped
        """
        self.parent_cache = parent_cache
        self.child_cache = child_cache
        self.reconciler = reconciler
        self.recorder = recorder or NullEventRecorder()
        if queue is None:
            queue = RateLimitingQueue(name=config.workqueue.name)
        self.queue = queue
        self.workers: List[WorkerThread] = []

        log.info("Setting up event handlers")
        self.triage = EventTriage(
            self.queue, parent_cache, cluster_scoped_parent=cluster_scoped_parent
        )
        parent_cache.add_event_handler(self.triage.handle_parent_event)
        child_cache.add_event_handler(self.triage.handle_child_event)

    ## Public Interface ########################################################

    def run(self, workers: Optional[int] = None, stop_event: Optional[threading.Event] = None):
        """Start the caches and workers and block until stop_event is set. On
        return the queue is shut down and all workers have exited.

        Args:
            workers:  Optional[int]
                Number of worker threads. Defaults to controller.workers
            stop_event:  Optional[threading.Event]
                Setting this shuts the controller down
        """
        workers = workers or config.controller.workers
        stop_event = stop_event or threading.Event()

        log.info("Starting %s controller", self.parent_cache.kind)
        self.recorder.start_thread()
        self.parent_cache.start_thread()
        self.child_cache.start_thread()
        try:
            log.info("Waiting for informer caches to sync")
            synced = wait_for_cache_sync(
                self.parent_cache,
                self.child_cache,
                stop_event=stop_event,
                timeout=config.controller.cache_sync_timeout,
            )
            if not synced.result():
                raise TransientError("failed to wait for caches to sync")

            log.info("Starting %d workers", workers)
            self.workers = [
                WorkerThread(self, name=f"worker_{i}") for i in range(workers)
            ]
            for worker in self.workers:
                worker.start_thread()

            log.info("Started workers")
            stop_event.wait()
        finally:
            self.shut_down()

    def shut_down(self):
        """Stop handing out work, wait for in-flight reconciliations and stop
        the caches
        """
        log.info("Shutting down workers")
        self.queue.shut_down()
        for worker in self.workers:
            worker.join()
        self.parent_cache.stop_thread()
        self.child_cache.stop_thread()
        self.recorder.stop_thread()

    def process_next_work_item(self) -> bool:
        """Take one key off the queue and reconcile it

        Returns:
            keep_going:  bool
                False once the queue is shutting down
        """
        item, shutting_down = self.queue.get()
        if shutting_down:
            return False
        try:
            self._process_item(item)
        finally:
            self.queue.done(item)
        return True

    ## Implementation Details ##################################################

    def _process_item(self, item: Hashable):
        """Run the reconciler for an item and decide whether it is forgotten or
        requeued
        """
        if not isinstance(item, str):
            log.error("Expected string in workqueue but got %r", item)
            self.queue.forget(item)
            return

        try:
            self.reconciler.sync(item)
        except MalformedItemError as err:
            log.error("Dropping malformed item %r: %s", item, err)
            self.queue.forget(item)
        except ControllerError as err:
            if not err.is_retryable:
                log.warning("Error syncing '%s', not retrying: %s", item, err)
                self.queue.forget(item)
                return
            log.warning(
                "Error syncing '%s', requeuing: %s",
                item,
                err,
                exc_info=True,
                extra={"key": item},
            )
            self.queue.add_rate_limited(item)
        except Exception as err:  # pylint: disable=broad-exception-caught
            log.warning(
                "Unexpected error syncing '%s', requeuing: %s",
                item,
                err,
                exc_info=True,
                extra={"key": item},
            )
            self.queue.add_rate_limited(item)
        else:
            log.info("Successfully synced '%s'", item, extra={"key": item})
            self.queue.forget(item)
