"""
This module holds the functionality used to publish the outcome of a
reconciliation onto the parent's status block

Every parent carries a single condition owned by the controller:

* Synced: True if every declared child exists, is controlled by the parent and
  matches its desired shape

Additionally, the names of the managed children are published in a top-level
list whose key is chosen per parent kind, e.g.
{
    "podDefaults": ["minio1-minio", "minio2-minio"],
    "conditions": [{"type": "Synced", ...}],
}
"""

# Standard
from datetime import datetime, timezone
from typing import List, Optional
import copy

# Third Party
from deepdiff import DeepDiff

# First Party
import alog

# Local
from . import constants
from .managed_object import ManagedObject
from .store import ResourceStoreBase

log = alog.use_channel("STTUS")

# Default status key holding the managed child names
CHILDREN_FIELD = "children"


def make_synced_condition(
    synced: bool,
    reason: str,
    message: str,
    current_status: Optional[dict] = None,
) -> dict:
    """Construct the Synced condition. The transition time of the current
    condition is kept when the condition's status did not flip.
    """
    previous = get_condition(constants.SYNCED_CONDITION, current_status or {})
    transition_time = previous.get(constants.TIMESTAMP_KEY)
    if not transition_time or previous.get("status") != str(synced):
        transition_time = datetime.now(timezone.utc).isoformat()
    log.debug2("%s status %s: %s", constants.SYNCED_CONDITION, synced, reason)
    return {
        "type": constants.SYNCED_CONDITION,
        "status": str(synced),
        "reason": reason,
        "message": message,
        constants.TIMESTAMP_KEY: transition_time,
    }


def update_conditions(current_status: dict, condition: dict) -> dict:
    """Replace a single condition, keeping all conditions of other types
    managed elsewhere
    """
    status = copy.deepcopy(current_status)
    conditions = [
        cond
        for cond in status.get("conditions", [])
        if cond.get("type") != condition["type"]
    ]
    conditions.append(condition)
    status["conditions"] = conditions
    return status


def get_condition(type_name: str, current_status: dict) -> dict:
    """Extract the given condition type from a status object

    Args:
        type_name:  str
            The condition type to fetch
        current_status:  dict
            The dict representation of the status of a parent

    Returns:
        condition:  dict
            The condition object if found, empty dict otherwise. When the
            status holds duplicates the last one wins, and the next
            update_conditions drops the rest
    """
    cond = [
        cond
        for cond in current_status.get("conditions", [])
        if cond.get("type") == type_name
    ]
    if len(cond) > 1:
        log.warning("Found %d condition entries for %s", len(cond), type_name)
    return cond[-1] if cond else {}


def status_changed(current_status: dict, new_status: dict) -> bool:
    """Compare two status objects to determine if there is a meaningful change
    between the current status and the proposed new status. A meaningful change
    is defined as any change besides a timestamp.
    """
    if not isinstance(current_status, dict) or not isinstance(new_status, dict):
        return True
    return bool(
        DeepDiff(
            current_status,
            new_status,
            exclude_obj_callback=lambda _, path: path.endswith(
                f"{constants.TIMESTAMP_KEY}']"
            ),
        )
    )


class StatusPublisher:
    """Writes reconciliation outcomes onto parents through the store's status
    subresource. Writes carry the parent's resourceVersion, so a parent that
    changed since it was read is rejected with StaleResourceVersionError.
    """

    def __init__(self, store: ResourceStoreBase, children_field: str = CHILDREN_FIELD):
        """
        Args:
            store:  ResourceStoreBase
                The store to write status through
            children_field:  str
                The status key holding the managed child names
        """
        self.store = store
        self.children_field = children_field

    def publish_synced(
        self, parent: ManagedObject, children: List[ManagedObject]
    ) -> dict:
        """Publish a successful reconciliation

        Args:
            parent:  ManagedObject
                The parent as read at the start of the reconciliation
            children:  List[ManagedObject]
                The managed children in declaration order

        Returns:
            status:  dict
                The published status
        """
        current_status = parent.get("status") or {}
        status = copy.deepcopy(current_status)
        status[self.children_field] = [child.name for child in children]
        condition = make_synced_condition(
            True,
            constants.SUCCESS_SYNCED,
            constants.MESSAGE_RESOURCE_SYNCED.format(kind=parent.kind),
            current_status,
        )
        return self._publish(parent, update_conditions(status, condition))

    def publish_failed(self, parent: ManagedObject, reason: str, message: str) -> dict:
        """Publish a failed reconciliation. The list of managed children is
        left as it was.
        """
        current_status = parent.get("status") or {}
        condition = make_synced_condition(False, reason, message, current_status)
        return self._publish(parent, update_conditions(current_status, condition))

    ## Implementation Details ##################################################

    def _publish(self, parent: ManagedObject, status: dict) -> dict:
        current_status = parent.get("status") or {}
        if not status_changed(current_status, status):
            log.debug2("No status change for %s", parent)
            return current_status

        log.debug("Found meaningful change. Updating status", extra={"resource": parent})
        log.debug2("(current) %s != (updated) %s", current_status, status)
        definition = parent.deep_copy()
        definition["status"] = status
        self.store.update_status(definition)
        return status
