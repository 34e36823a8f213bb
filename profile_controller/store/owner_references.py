"""
This module holds the helpers used to stamp and resolve controller owner
references on child objects
"""

# Standard
from dataclasses import dataclass
from typing import Mapping, Optional, Union

# First Party
import alog

# Local
from ..managed_object import ManagedObject

log = alog.use_channel("OWNRF")


@dataclass(frozen=True)
class OwnerReference:
    """The fields of a metadata.ownerReferences entry that identify the owner"""

    api_version: str
    kind: str
    name: str
    uid: Optional[str]
    controller: bool = False
    block_owner_deletion: bool = False

    @classmethod
    def from_dict(cls, owner_ref: Mapping) -> "OwnerReference":
        return cls(
            api_version=owner_ref.get("apiVersion"),
            kind=owner_ref.get("kind"),
            name=owner_ref.get("name"),
            uid=owner_ref.get("uid"),
            controller=bool(owner_ref.get("controller", False)),
            block_owner_deletion=bool(owner_ref.get("blockOwnerDeletion", False)),
        )

    def to_dict(self) -> dict:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": self.controller,
            "blockOwnerDeletion": self.block_owner_deletion,
        }


def make_controller_reference(owner: Union[ManagedObject, Mapping]) -> dict:
    """Make the controller owner reference for the given parent

    Args:
        owner:  Union[ManagedObject, Mapping]
            The parent that will control the child

    Returns:
        owner_reference:  dict
            The dict entry for the `metadata.ownerReferences` entry of the owned
            object
    """
    metadata = owner.get("metadata") or {}
    return OwnerReference(
        api_version=owner.get("apiVersion"),
        kind=owner.get("kind"),
        name=metadata.get("name"),
        uid=metadata.get("uid"),
        controller=True,
        # The parent will not be deleted until this object completes its
        # deletion
        block_owner_deletion=True,
    ).to_dict()


def set_controller_reference(owner: Union[ManagedObject, Mapping], child: dict):
    """Stamp the controller reference for owner onto the child definition in
    place. Any existing controller reference is replaced, other owner
    references are kept.
    """
    metadata = child.setdefault("metadata", {})
    owner_refs = [
        ref
        for ref in metadata.get("ownerReferences") or []
        if not ref.get("controller")
    ]
    owner_refs.append(make_controller_reference(owner))
    log.debug4("Final owner refs: %s", owner_refs)
    metadata["ownerReferences"] = owner_refs


def get_controller_of(obj: Union[ManagedObject, Mapping]) -> Optional[OwnerReference]:
    """Get the controller owner reference of an object if it has one"""
    if isinstance(obj, ManagedObject):
        owner_refs = obj.owner_references
    else:
        owner_refs = (obj.get("metadata") or {}).get("ownerReferences") or []
    for owner_ref in owner_refs:
        if owner_ref.get("controller"):
            return OwnerReference.from_dict(owner_ref)
    return None


def is_controlled_by(
    obj: Union[ManagedObject, Mapping],
    owner: Union[ManagedObject, Mapping],
) -> bool:
    """Determine whether obj's controller owner reference points at owner. The
    owner's uid is the identity, so a recreated parent with the same name does
    not control its predecessor's children.
    """
    controller_ref = get_controller_of(obj)
    if controller_ref is None:
        return False
    owner_uid = (owner.get("metadata") or {}).get("uid")
    log.debug3("Comparing controller uid %s to owner uid %s", controller_ref.uid, owner_uid)
    return owner_uid is not None and controller_ref.uid == owner_uid
