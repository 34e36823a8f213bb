"""
Helper object to represent a read-only view of a kubernetes object held in a
cache or returned from a store
"""
# Standard
from typing import Any, List, Mapping, Optional
import copy

# Local
from .utils import meta_namespace_key


class ManagedObject:  # pylint: disable=too-many-instance-attributes
    """Read-only view over a resource definition. The definition is copied on
    construction and never handed out directly, so objects held by a cache
    cannot be modified in place. Use deep_copy() to get a mutable dict.
    """

    def __init__(self, definition: Mapping):
        self._definition = copy.deepcopy(dict(definition))
        metadata = self._definition.get("metadata") or {}
        self.kind = self._definition.get("kind")
        self.api_version = self._definition.get("apiVersion")
        self.name = metadata.get("name")
        self.namespace = metadata.get("namespace") or None
        self.uid = metadata.get("uid")
        self.resource_version = metadata.get("resourceVersion")

        assert self.kind is not None, "No kind found"
        assert self.api_version is not None, "No apiVersion found"
        assert self.name is not None, "No name found"

    @property
    def key(self) -> str:
        """The reconciliation key for this object"""
        return meta_namespace_key(self._definition)

    @property
    def metadata(self) -> dict:
        return copy.deepcopy(self._definition.get("metadata") or {})

    @property
    def owner_references(self) -> List[dict]:
        return copy.deepcopy(
            (self._definition.get("metadata") or {}).get("ownerReferences") or []
        )

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Get a copy of a top-level field of the definition"""
        return copy.deepcopy(self._definition.get(key, default))

    def deep_copy(self) -> dict:
        """Get a mutable copy of the full definition. This is the only way to
        obtain something that can be modified and written back.
        """
        return copy.deepcopy(self._definition)

    def __str__(self):
        return f"{self.api_version}/{self.kind}/{self.key}"

    def __repr__(self):
        return str(self)

    def __hash__(self):
        """Hash is based on the identity of the object in the cluster rather
        than on its content
        """
        return hash(self.uid or str(self))

    def __eq__(self, other):
        if not isinstance(other, ManagedObject):
            return NotImplemented
        return self._definition == other._definition
