"""
The Reconciler holds the level-triggered sync algorithm: given a key it reads
the parent, drives every declared child toward its desired shape, and
publishes the outcome onto the parent
"""

# Standard
from dataclasses import dataclass
from typing import Callable, List, Optional
import abc

# Third Party
from deepdiff import DeepDiff

# First Party
import alog

# Local
from . import constants
from .cache import ResourceCache
from .events import NullEventRecorder
from .exceptions import ControllerError, NotFoundError, OwnershipConflictError
from .managed_object import ManagedObject
from .status import StatusPublisher
from .store import ResourceStoreBase, is_controlled_by, set_controller_reference
from .utils import split_meta_namespace_key

log = alog.use_channel("RECON")


def spec_differs(existing: ManagedObject, desired: dict) -> bool:
    """Default comparison hook: the child needs an update when its spec is not
    semantically equal to the desired spec
    """
    diff = DeepDiff(existing.get("spec"), desired.get("spec"))
    if diff:
        log.debug3("Spec diff for %s: %s", existing, diff)
    return bool(diff)


@dataclass
class ChildSpec:
    """One desired child of a parent

    Attributes:
        name:  str
            The name of the child
        build:  Callable[[ManagedObject], dict]
            Renders the desired child definition from the parent. The name,
            namespace and owner reference are filled in by the reconciler.
        needs_update:  Callable[[ManagedObject, dict], bool]
            Decides whether an existing child has drifted from the desired one
    """

    name: str
    build: Callable[[ManagedObject], dict]
    needs_update: Callable[[ManagedObject, dict], bool] = spec_differs


class Reconciler(abc.ABC):
    """Base class for the sync algorithm of one parent kind. Subclasses declare
    the children of a parent; the base class creates missing children, refuses
    to touch children it does not control, and repairs drift.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        parent_cache: ResourceCache,
        child_cache: ResourceCache,
        store: ResourceStoreBase,
        recorder: Optional[NullEventRecorder] = None,
        status_publisher: Optional[StatusPublisher] = None,
    ):
        """
        Args:
            parent_cache:  ResourceCache
                Cache of parents. Parents are always read from here
            child_cache:  ResourceCache
                Cache of children. Existing children are read from here
            store:  ResourceStoreBase
                Store used for all writes
            recorder:  Optional[NullEventRecorder]
                Sink for events about parents
            status_publisher:  Optional[StatusPublisher]
                Publisher for parent status. Defaults to one writing through
                the store
        """
        self.parent_cache = parent_cache
        self.child_cache = child_cache
        self.store = store
        self.recorder = recorder or NullEventRecorder()
        self.status_publisher = status_publisher or StatusPublisher(store)

    ## Abstract Interface ######################################################

    @abc.abstractmethod
    def child_specs(self, parent: ManagedObject) -> List[ChildSpec]:
        """Declare the children the parent should have, in order"""

    def child_namespace(self, parent: ManagedObject) -> str:
        """The namespace the parent's children live in. Cluster-scoped parents
        own the namespace named after them.
        """
        return parent.namespace or parent.name

    def after_children(  # pylint: disable=unused-argument
        self, parent: ManagedObject, children: List[ManagedObject]
    ):
        """Hook run once all children are in place, before status is
        published. Errors raised here fail the reconciliation.
        """
        return

    ## Public Interface ########################################################

    def sync(self, key: str):
        """Reconcile the parent identified by key. Returns normally when the
        parent is in sync or no longer exists, raises otherwise.
        """
        namespace, name = split_meta_namespace_key(key)
        try:
            parent = self.parent_cache.get(namespace, name)
        except NotFoundError:
            log.info("%s '%s' in work queue no longer exists", self.parent_cache.kind, key)
            return

        log.debug("Syncing %s", parent, extra={"resource": parent})
        child_specs = self.child_specs(parent)
        for child_spec in child_specs:
            if not child_spec.name:
                # Retrying will not help until the parent is changed
                log.warning("%s: child name must be specified", key)
                return

        children = [
            self._sync_child(parent, child_spec) for child_spec in child_specs
        ]
        self.after_children(parent, children)

        self.status_publisher.publish_synced(parent, children)
        self.recorder.event(
            parent,
            constants.EVENT_TYPE_NORMAL,
            constants.SUCCESS_SYNCED,
            constants.MESSAGE_RESOURCE_SYNCED.format(kind=parent.kind),
        )

    ## Implementation Details ##################################################

    def _sync_child(self, parent: ManagedObject, child_spec: ChildSpec) -> ManagedObject:
        namespace = self.child_namespace(parent)
        desired = child_spec.build(parent)
        metadata = desired.setdefault("metadata", {})
        metadata["name"] = child_spec.name
        metadata["namespace"] = namespace
        set_controller_reference(parent, desired)

        try:
            existing = self.child_cache.get(namespace, child_spec.name)
        except NotFoundError:
            log.info("Creating %s/%s for %s", namespace, child_spec.name, parent)
            return ManagedObject(self.store.create(desired))

        if not is_controlled_by(existing, parent):
            self._ownership_conflict(parent, existing)

        if child_spec.needs_update(existing, desired):
            log.info("Updating drifted %s", existing, extra={"resource": parent})
            updated = existing.deep_copy()
            for field, value in desired.items():
                if field not in ("metadata", "status"):
                    updated[field] = value
            return ManagedObject(self.store.update(updated))

        log.debug2("%s is up to date", existing)
        return existing

    def _ownership_conflict(self, parent: ManagedObject, child: ManagedObject):
        """Surface a name collision with a child this parent does not control"""
        message = constants.MESSAGE_RESOURCE_EXISTS.format(
            name=child.name, kind=parent.kind
        )
        self.recorder.event(
            parent, constants.EVENT_TYPE_WARNING, constants.ERR_RESOURCE_EXISTS, message
        )
        try:
            self.status_publisher.publish_failed(
                parent, constants.ERR_RESOURCE_EXISTS, message
            )
        except ControllerError as err:
            log.warning("Failed to publish conflict status for %s: %s", parent, err)
        raise OwnershipConflictError(message, name=child.name)
