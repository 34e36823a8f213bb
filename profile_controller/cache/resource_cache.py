"""
The ResourceCache keeps an eventually-consistent local mirror of one kind by
listing it and then following the store's watch stream
"""

# Standard
from typing import Callable, Dict, List, Optional
import threading
import time

# Third Party
from kubernetes import watch

# First Party
import alog

# Local
from .. import config
from ..exceptions import ExpiredResourceVersionError, NotFoundError
from ..managed_object import ManagedObject
from ..store import KubeEventType, KubeWatchEvent, ResourceStoreBase
from ..threads import ThreadBase
from ..utils import make_key
from .events import Added, CacheEvent, Deleted, Tombstone, Updated

log = alog.use_channel("CACHE")

EventHandler = Callable[[CacheEvent], None]


class ResourceCache(ThreadBase):  # pylint: disable=too-many-instance-attributes
    """The ResourceCache lists all objects of a kind, marks itself synced, and
    then applies every watch event to its index before notifying the
    registered handlers. When the watch expires or fails it re-lists and
    delivers objects that disappeared in between as tombstoned deletes.

    Objects handed out by the cache are read-only ManagedObjects.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: ResourceStoreBase,
        kind: str,
        api_version: str,
        namespace: Optional[str] = None,
        resync_period: Optional[float] = None,
    ):
        """
        Args:
            store:  ResourceStoreBase
                The store to list and watch
            kind:  str
                The kind to mirror
            api_version:  str
                The api_version of the kind
            namespace:  Optional[str]
                The namespace to mirror. If None then cluster-wide
            resync_period:  Optional[float]
                Seconds between replays of every cached object to the handlers.
                Defaults to controller.resync_period from the library config
        """
        self.store = store
        self.kind = kind
        self.api_version = api_version
        self.namespace = namespace
        if resync_period is None:
            resync_period = config.controller.resync_period
        self.resync_period = resync_period

        name = f"cache_{api_version}_{kind}"
        if namespace:
            name = name + f"_{namespace}"
        super().__init__(name=name, daemon=True)

        # Setup kubernetes watch resource. Stopping it ends the current stream
        self.kubernetes_watch = watch.Watch()

        self._index: Dict[str, ManagedObject] = {}
        self._index_lock = threading.Lock()
        self._handlers: List[EventHandler] = []
        self._synced = threading.Event()
        self._last_resync = time.monotonic()

    def run(self):
        """The cache's control loop alternates between listing and watching
        until the thread is stopped
        """
        resource_version = None
        while not self.should_stop():
            try:
                if resource_version is None:
                    resource_version = self._relist()
                resource_version = self._watch(resource_version)
                self._maybe_resync()
            except ExpiredResourceVersionError as err:
                log.info("Watch of %s expired, re-listing: %s", self.kind, err)
                resource_version = None
                if not self.wait_on_shutdown(config.cache.watch_retry_delay):
                    return
            except Exception as err:  # pylint: disable=broad-exception-caught
                log.warning(
                    "Failed to list/watch %s: %s", self.kind, repr(err), exc_info=True
                )
                resource_version = None
                if not self.wait_on_shutdown(config.cache.watch_retry_delay):
                    return

    ## Class Interface #########################################################

    def stop_thread(self):
        """Override stop_thread to stop the kubernetes client's Watch as well"""
        super().stop_thread()
        self.kubernetes_watch.stop()

    ## Public Interface ########################################################

    def add_event_handler(self, handler: EventHandler):
        """Register a handler called with every Added, Updated and Deleted
        event. Handlers run on the cache thread and must not block.
        """
        self._handlers.append(handler)

    def has_synced(self) -> bool:
        """Whether the initial list has been fully applied"""
        return self._synced.is_set()

    def wait_for_sync(self, timeout: Optional[float] = None) -> bool:
        return self._synced.wait(timeout)

    def get(self, namespace: Optional[str], name: str) -> ManagedObject:
        """Get a cached object

        Args:
            namespace:  Optional[str]
                The object's namespace or None for cluster-scoped kinds
            name:  str
                The object's name

        Returns:
            obj:  ManagedObject
                The read-only cached object
        """
        key = make_key(name, namespace)
        with self._index_lock:
            obj = self._index.get(key)
        if obj is None:
            raise NotFoundError(f"{self.kind} [{key}] not found in cache")
        return obj

    def list(self, namespace: Optional[str] = None) -> List[ManagedObject]:
        """List cached objects, optionally limited to one namespace"""
        with self._index_lock:
            objs = list(self._index.values())
        if namespace is None:
            return objs
        return [obj for obj in objs if obj.namespace == namespace]

    ## Implementation Details ##################################################

    def _relist(self) -> Optional[str]:
        """List the kind and reconcile the index against the result

        Returns:
            resource_version:  Optional[str]
                The version to start the following watch from
        """
        items, resource_version = self.store.list(
            self.kind, self.api_version, namespace=self.namespace
        )
        listed = {}
        for item in items:
            obj = ManagedObject(item)
            listed[obj.key] = obj
        log.debug("Listed %d %s at version %s", len(listed), self.kind, resource_version)

        with self._index_lock:
            previous = self._index
            self._index = listed

        events = []
        for key, obj in listed.items():
            old = previous.get(key)
            if old is None:
                events.append(Added(obj))
            elif old.resource_version != obj.resource_version:
                events.append(Updated(old, obj))
        for key, old in previous.items():
            if key not in listed:
                log.debug2("%s [%s] vanished between lists", self.kind, key)
                events.append(Deleted(Tombstone(key, old)))

        for event in events:
            self._dispatch(event)
        if not self._synced.is_set():
            log.info("Cache of %s synced", self.kind)
            self._synced.set()
        return resource_version

    def _watch(self, resource_version: Optional[str]) -> Optional[str]:
        """Apply watch events until the stream ends

        Returns:
            resource_version:  Optional[str]
                The version of the last event seen, to resume from
        """
        timeout = config.cache.watch_timeout
        if self.resync_period:
            timeout = min(timeout, self.resync_period)
        for event in self.store.watch(
            self.kind,
            self.api_version,
            namespace=self.namespace,
            resource_version=resource_version,
            timeout=timeout,
            watch_manager=self.kubernetes_watch,
        ):
            if self.should_stop():
                break
            self._apply(event)
            resource_version = event.resource.resource_version or resource_version
            self._maybe_resync()
        return resource_version

    def _apply(self, event: KubeWatchEvent):
        resource = event.resource
        key = resource.key
        log.debug3("Applying %s event for %s", event.type.value, resource)
        with self._index_lock:
            if event.type == KubeEventType.DELETED:
                old = self._index.pop(key, None)
            else:
                old = self._index.get(key)
                self._index[key] = resource

        if event.type == KubeEventType.DELETED:
            self._dispatch(Deleted(resource))
        elif old is None:
            self._dispatch(Added(resource))
        else:
            self._dispatch(Updated(old, resource))

    def _maybe_resync(self):
        if not self.resync_period:
            return
        now = time.monotonic()
        if now - self._last_resync < self.resync_period:
            return
        self._last_resync = now
        objs = self.list()
        log.debug2("Resyncing %d %s", len(objs), self.kind)
        for obj in objs:
            self._dispatch(Updated(obj, obj))

    def _dispatch(self, event: CacheEvent):
        for handler in self._handlers:
            try:
                handler(event)
            except Exception as err:  # pylint: disable=broad-exception-caught
                log.warning(
                    "Handler %s failed on %s: %s", handler, event, err, exc_info=True
                )
