"""
The closed set of change notifications delivered by a ResourceCache
"""

# Standard
from dataclasses import dataclass
from typing import Union

# Local
from ..managed_object import ManagedObject


@dataclass(frozen=True)
class Added:
    """An object appeared in the cache"""

    obj: ManagedObject


@dataclass(frozen=True)
class Updated:
    """An object in the cache changed. On a periodic resync old and new are the
    same object.
    """

    old: ManagedObject
    new: ManagedObject


@dataclass(frozen=True)
class Tombstone:
    """The last known state of an object whose deletion was not observed
    directly, only inferred when a re-list no longer contained it
    """

    key: str
    obj: ManagedObject


@dataclass(frozen=True)
class Deleted:
    """An object left the cache"""

    obj: Union[ManagedObject, Tombstone]

    @property
    def last_known(self) -> ManagedObject:
        """The deleted object, recovered from the tombstone if needed"""
        if isinstance(self.obj, Tombstone):
            return self.obj.obj
        return self.obj


CacheEvent = Union[Added, Updated, Deleted]
