"""
This defines the base class for all ResourceStore types. A store is the source
of truth for parents and children: every read that must be authoritative and
every write goes through it.
"""

# Standard
from typing import Any, Iterator, List, Optional, Tuple
import abc

# Local
from .kube_event import KubeWatchEvent


class ResourceStoreBase(abc.ABC):
    """
    Base class for resource stores. All methods raise the exceptions from
    profile_controller.exceptions:

    * NotFoundError when the named object does not exist
    * ConflictError when a create collides with an existing object
    * StaleResourceVersionError when an optimistic-concurrency write is rejected
    * TransientError for any other failure talking to the store
    """

    @abc.abstractmethod
    def get(
        self,
        kind: str,
        api_version: str,
        name: str,
        namespace: Optional[str] = None,
    ) -> dict:
        """Fetch the current state of a single object

        Args:
            kind:  str
                The kind of the object to fetch
            api_version:  str
                The api_version of the resource kind to fetch
            name:  str
                The name of the object to fetch
            namespace:  Optional[str]
                The namespace of the object or None for cluster-scoped kinds

        Returns:
            current_state:  dict
                The dict representation of the object
        """

    @abc.abstractmethod
    def list(
        self,
        kind: str,
        api_version: str,
        namespace: Optional[str] = None,
    ) -> Tuple[List[dict], Optional[str]]:
        """List all objects of a kind

        Args:
            kind:  str
                The kind of the objects to list
            api_version:  str
                The api_version of the resource kind to list
            namespace:  Optional[str]
                The namespace to list in, or None for all namespaces

        Returns:
            items:  List[dict]
                The dict representations of the matching objects
            resource_version:  Optional[str]
                The resource version of the list, used to start a watch that
                sees every change after it
        """

    @abc.abstractmethod
    def watch(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        api_version: str,
        namespace: Optional[str] = None,
        resource_version: Optional[str] = None,
        timeout: Optional[float] = None,
        watch_manager: Optional[Any] = None,
    ) -> Iterator[KubeWatchEvent]:
        """Stream changes to objects of a kind. The stream ends when the
        timeout elapses or the watch_manager is stopped.

        Args:
            kind:  str
                The kind of the objects to watch
            api_version:  str
                The api_version of the resource kind to watch
            namespace:  Optional[str]
                The namespace to watch, or None for all namespaces
            resource_version:  Optional[str]
                Only changes newer than this version are streamed
            timeout:  Optional[float]
                Seconds after which the stream ends
            watch_manager:  Optional[kubernetes.watch.Watch]
                Handle that can be stopped to end the stream early

        Returns:
            watch_stream:  Iterator[KubeWatchEvent]
                A stream of KubeWatchEvents generated while watching
        """

    @abc.abstractmethod
    def create(self, definition: dict) -> dict:
        """Create a new object

        Args:
            definition:  dict
                The full definition of the object to create

        Returns:
            created:  dict
                The object as stored, with server-populated metadata
        """

    @abc.abstractmethod
    def update(self, definition: dict) -> dict:
        """Replace an existing object. If the definition carries a
        metadata.resourceVersion, the write only succeeds if it is current.
        The status block is never changed by this call.

        Args:
            definition:  dict
                The full definition of the object to update

        Returns:
            updated:  dict
                The object as stored
        """

    @abc.abstractmethod
    def update_status(self, definition: dict) -> dict:
        """Replace only the status block of an existing object, subject to the
        same optimistic-concurrency check as update. The spec is never changed
        by this call.

        Args:
            definition:  dict
                The object definition holding the new status

        Returns:
            updated:  dict
                The object as stored
        """

    @abc.abstractmethod
    def delete(
        self,
        kind: str,
        api_version: str,
        name: str,
        namespace: Optional[str] = None,
    ):
        """Delete an object

        Args:
            kind:  str
                The kind of the object to delete
            api_version:  str
                The api_version of the resource kind to delete
            name:  str
                The name of the object to delete
            namespace:  Optional[str]
                The namespace of the object or None for cluster-scoped kinds
        """
