"""
Event triage turns cache notifications into reconciliation keys. Parent
changes enqueue the parent directly; child changes are routed to the parent
named by the child's controller owner reference.
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from .cache import Added, CacheEvent, Deleted, ResourceCache, Updated
from .exceptions import NotFoundError
from .managed_object import ManagedObject
from .store import get_controller_of
from .workqueue import WorkQueue

log = alog.use_channel("TRIAGE")


class EventTriage:
    """Routes cache events for one parent kind and its owned children onto a
    work queue
    """

    def __init__(
        self,
        queue: WorkQueue,
        parent_cache: ResourceCache,
        cluster_scoped_parent: bool = False,
    ):
        """
        Args:
            queue:  WorkQueue
                The queue to add reconciliation keys to
            parent_cache:  ResourceCache
                The cache of parents, used to resolve owner references
            cluster_scoped_parent:  bool
                If True, owners are looked up without a namespace
        """
        self.queue = queue
        self.parent_cache = parent_cache
        self.cluster_scoped_parent = cluster_scoped_parent

    @property
    def parent_kind(self) -> str:
        return self.parent_cache.kind

    ## Handlers ################################################################

    def handle_parent_event(self, event: CacheEvent):
        """Enqueue the key of an added or updated parent. Deleted parents need
        no reconciliation.
        """
        if isinstance(event, Added):
            self.enqueue(event.obj)
        elif isinstance(event, Updated):
            self.enqueue(event.new)
        elif isinstance(event, Deleted):
            log.debug2("Ignoring delete of parent %s", event.last_known)
        else:
            raise TypeError(f"Unknown cache event {event!r}")

    def handle_child_event(self, event: CacheEvent):
        """Enqueue the controlling parent of a changed child"""
        if isinstance(event, Added):
            self.handle_object(event.obj)
        elif isinstance(event, Updated):
            # Periodic resyncs replay every object with an unchanged version
            if event.old.resource_version == event.new.resource_version:
                log.debug3("Ignoring resync of %s", event.new)
                return
            self.handle_object(event.new)
        elif isinstance(event, Deleted):
            self.handle_object(event.last_known)
        else:
            raise TypeError(f"Unknown cache event {event!r}")

    ## Implementation Details ##################################################

    def enqueue(self, obj: ManagedObject):
        log.debug2("Enqueueing %s", obj.key, extra={"resource": obj})
        self.queue.add(obj.key)

    def handle_object(self, obj: ManagedObject):
        """Find the parent controlling obj and enqueue it. Objects with no
        controller, a controller of a different kind, or a controller that is
        not in the parent cache are ignored.
        """
        log.debug3("Processing object: %s", obj)
        owner_ref = get_controller_of(obj)
        if owner_ref is None:
            log.debug3("Ignoring %s without a controller", obj)
            return
        if owner_ref.kind != self.parent_kind:
            log.debug3("Ignoring %s controlled by %s", obj, owner_ref.kind)
            return

        parent = self._lookup_parent(obj, owner_ref.name)
        if parent is None or (owner_ref.uid and parent.uid != owner_ref.uid):
            log.debug(
                "Ignoring orphaned object '%s' of %s '%s'",
                obj.name,
                self.parent_kind,
                owner_ref.name,
            )
            return
        self.enqueue(parent)

    def _lookup_parent(self, obj: ManagedObject, name: str) -> Optional[ManagedObject]:
        namespace = None if self.cluster_scoped_parent else obj.namespace
        try:
            return self.parent_cache.get(namespace, name)
        except NotFoundError:
            return None
