"""
This ResourceStore is responsible for delegating cluster operations to the
openshift library. It is the one that will be used when the controller is
running in the cluster or outside the cluster making live changes.
"""
# Standard
from typing import Callable, Iterator, Optional
import threading

# Third Party
from kubernetes import client
from kubernetes.watch import Watch
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import ConflictError as OpenshiftConflictError
from openshift.dynamic.exceptions import DynamicApiError
from openshift.dynamic.exceptions import NotFoundError as OpenshiftNotFoundError
from openshift.dynamic.exceptions import (
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes
import urllib3

# First Party
import alog

# Local
from .. import config
from ..exceptions import (
    ConflictError,
    ExpiredResourceVersionError,
    NotFoundError,
    StaleResourceVersionError,
    TransientError,
)
from ..managed_object import ManagedObject
from .base import ResourceStoreBase
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("OSFTS")

# See this document for value reasonings
# https://github.com/kubernetes-client/python/blob/master/examples/watch/timeout-settings.md
CLIENT_WATCH_TIMEOUT = 60

# HTTP status used by the API server when a watch's resourceVersion is gone
HTTP_GONE = 410


class OpenshiftResourceStore(ResourceStoreBase):
    """This ResourceStore uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self, dynamic_client: Optional[DynamicClient] = None):
        """
        Args:
            dynamic_client:  Optional[DynamicClient]
                A preconfigured client. If not given, one is created lazily
                from the in-cluster config or the local kubeconfig.
        """
        self._client = dynamic_client
        self._client_lock = threading.Lock()

    @property
    def client(self) -> DynamicClient:
        """Lazy property access to the client"""
        with self._client_lock:
            if self._client is None:
                self._client = self._setup_client()
            return self._client

    ## Interface ###############################################################

    def get(self, kind, api_version, name, namespace=None):
        resource_handle = self._get_resource_handle(kind, api_version)
        return self._retried_operation(
            lambda: resource_handle.get(name=name, namespace=namespace).to_dict(),
            f"get {kind}/{name}",
        )

    def list(self, kind, api_version, namespace=None):
        resource_handle = self._get_resource_handle(kind, api_version)
        list_obj = self._retried_operation(
            lambda: resource_handle.get(namespace=namespace).to_dict(),
            f"list {kind}",
        )
        return (
            list_obj.get("items", []),
            list_obj.get("metadata", {}).get("resourceVersion"),
        )

    def watch(  # pylint: disable=too-many-arguments
        self,
        kind,
        api_version,
        namespace=None,
        resource_version=None,
        timeout=None,
        watch_manager=None,
    ) -> Iterator[KubeWatchEvent]:
        watch_manager = watch_manager if watch_manager else Watch()
        resource_handle = self._get_resource_handle(kind, api_version)
        try:
            for event_obj in watch_manager.stream(
                resource_handle.get,
                resource_version=resource_version,
                namespace=namespace,
                serialize=False,
                timeout_seconds=int(timeout) if timeout else None,
                _request_timeout=CLIENT_WATCH_TIMEOUT,
            ):
                event_type = KubeEventType(event_obj["type"])
                yield KubeWatchEvent(event_type, ManagedObject(event_obj["object"]))
        except client.exceptions.ApiException as exception:
            if exception.status == HTTP_GONE:
                raise ExpiredResourceVersionError(
                    f"Resource version {resource_version} expired for {kind}"
                ) from exception
            raise TransientError(f"Watch of {kind} failed: {exception}") from exception
        except DynamicApiError as exception:
            if exception.status == HTTP_GONE:
                raise ExpiredResourceVersionError(
                    f"Resource version {resource_version} expired for {kind}"
                ) from exception
            raise TransientError(f"Watch of {kind} failed: {exception}") from exception
        except (urllib3.exceptions.ReadTimeoutError, urllib3.exceptions.ProtocolError):
            log.debug2("Watch socket closed for %s/%s", kind, api_version)

    def create(self, definition):
        kind, api_version, name, namespace = self._get_resource_identifiers(definition)
        resource_handle = self._get_resource_handle(kind, api_version)
        return self._retried_operation(
            lambda: resource_handle.create(
                body=definition, namespace=namespace
            ).to_dict(),
            f"create {kind}/{name}",
        )

    def update(self, definition):
        kind, api_version, name, namespace = self._get_resource_identifiers(definition)
        resource_handle = self._get_resource_handle(kind, api_version)
        return self._retried_operation(
            lambda: resource_handle.replace(
                body=definition, namespace=namespace
            ).to_dict(),
            f"update {kind}/{name}",
            optimistic=True,
        )

    def update_status(self, definition):
        kind, api_version, name, namespace = self._get_resource_identifiers(definition)
        resource_handle = self._get_resource_handle(kind, api_version)
        return self._retried_operation(
            lambda: resource_handle.status.replace(
                body=definition, namespace=namespace
            ).to_dict(),
            f"update status of {kind}/{name}",
            optimistic=True,
        )

    def delete(self, kind, api_version, name, namespace=None):
        resource_handle = self._get_resource_handle(kind, api_version)
        self._retried_operation(
            lambda: resource_handle.delete(name=name, namespace=namespace),
            f"delete {kind}/{name}",
        )

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client() -> DynamicClient:
        """Create a DynamicClient that will work based on where the controller
        is running
        """
        # Try in-cluster config
        try:
            log.debug2("Running with in-cluster config")
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)
            return DynamicClient(kubernetes.client.ApiClient(kube_config))

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(self, kind: str, api_version: str) -> Resource:
        """Get the openshift resource handle for a specified kind and api_version"""
        try:
            return self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError) as err:
            raise TransientError(
                f"No unique resource type found for {api_version}/{kind}"
            ) from err

    @staticmethod
    def _get_resource_identifiers(definition: dict):
        metadata = definition.get("metadata", {})
        return (
            definition.get("kind"),
            definition.get("apiVersion"),
            metadata.get("name"),
            metadata.get("namespace"),
        )

    @staticmethod
    def _retried_operation(
        operation: Callable,
        description: str,
        optimistic: bool = False,
    ):
        """Run an operation against the cluster, retrying transient failures in
        place and translating client errors into the controller's exceptions.
        Conflicts are never retried here since the caller must re-read first.
        """
        max_retries = config.store.retries
        for attempt in range(max_retries + 1):
            try:
                return operation()
            except OpenshiftNotFoundError as err:
                raise NotFoundError(f"Failed to {description}: not found") from err
            except OpenshiftConflictError as err:
                if optimistic:
                    raise StaleResourceVersionError(
                        f"Failed to {description}: {err.summary()}"
                    ) from err
                raise ConflictError(f"Failed to {description}: {err.summary()}") from err
            except (DynamicApiError, urllib3.exceptions.HTTPError) as err:
                log.debug(
                    "Attempt %d/%d to %s failed: %s",
                    attempt + 1,
                    max_retries + 1,
                    description,
                    err,
                )
                if attempt == max_retries:
                    raise TransientError(f"Failed to {description}: {err}") from err
