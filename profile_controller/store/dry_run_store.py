"""
The DryRunResourceStore implements the ResourceStore interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map. Every write is recorded in an ordered event log so that watches
can resume from any resource version still held in the log.
"""

# Standard
from collections import deque
from datetime import datetime, timedelta
from threading import Condition
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple
import copy
import uuid

# First Party
import alog

# Local
from ..exceptions import (
    ConflictError,
    ExpiredResourceVersionError,
    NotFoundError,
    StaleResourceVersionError,
)
from ..managed_object import ManagedObject
from .base import ResourceStoreBase
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("DRY-RUN")

# Seconds between checks of a watch_manager's stop flag while a watch is idle
WATCH_POLL_TIME = 0.1

# Default number of events retained for watches to resume from
DEFAULT_HISTORY_SIZE = 1000

# Default number of posted v1/Event objects kept, oldest are expired first
DEFAULT_MAX_EVENTS = 1000


class DryRunResourceStore(ResourceStoreBase):
    """
    Resource store which doesn't actually talk to a cluster!
    """

    def __init__(
        self,
        resources: Optional[List[dict]] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
        max_events: int = DEFAULT_MAX_EVENTS,
    ):
        """Construct with an optional set of resources that already exist

        Args:
            resources:  Optional[List[dict]]
                Definitions to create before any watches start
            history_size:  int
                Number of events retained for watches to resume from
            max_events:  int
                Number of v1/Event objects kept before the oldest expire
        """
        self._cluster_content: Dict[Tuple[str, str, str, str], dict] = {}
        self._event_log: Deque[Tuple[int, KubeEventType, dict]] = deque()
        self._history_size = history_size
        self._max_events = max_events
        self._posted_events: Deque[Tuple[str, str, str, str]] = deque()
        self._compacted_version = 0
        self._resource_version = 0

        # Single condition guards all content and wakes idle watches
        self._condition = Condition()

        for resource in resources or []:
            self.create(resource)

    ## Interface ###############################################################

    def get(self, kind, api_version, name, namespace=None):
        log.debug2("DRY RUN get of [%s/%s] in [%s]", kind, name, namespace)
        with self._condition:
            content = self._cluster_content.get(
                self._key(api_version, kind, namespace, name)
            )
            if content is None:
                raise NotFoundError(
                    f"{api_version}/{kind} [{name}] not found in [{namespace}]"
                )
            return copy.deepcopy(content)

    def list(self, kind, api_version, namespace=None):
        log.debug2("DRY RUN list of [%s] in [%s]", kind, namespace)
        with self._condition:
            matches = [
                copy.deepcopy(content)
                for content in self._cluster_content.values()
                if self._matches(content, kind, api_version, namespace)
            ]
            return matches, str(self._resource_version)

    def watch(  # pylint: disable=too-many-arguments
        self,
        kind,
        api_version,
        namespace=None,
        resource_version=None,
        timeout=None,
        watch_manager=None,
    ) -> Iterator[KubeWatchEvent]:
        """Yield every logged event newer than resource_version, then block for
        new ones until the timeout or the watch_manager is stopped"""
        with self._condition:
            last_version = (
                self._resource_version
                if resource_version is None
                else int(resource_version)
            )
            if last_version < self._compacted_version:
                raise ExpiredResourceVersionError(
                    f"Resource version {resource_version} is too old"
                )

        end_time = datetime.max
        if timeout:
            end_time = datetime.now() + timedelta(seconds=timeout)

        while True:
            with self._condition:
                if last_version < self._compacted_version:
                    raise ExpiredResourceVersionError(
                        f"Resource version {last_version} was compacted while watching"
                    )
                events = self._events_since(last_version, kind, api_version, namespace)
                if not events:
                    # Nothing up to the current version matches this watch
                    last_version = self._resource_version
                    if self._stopped(watch_manager) or datetime.now() >= end_time:
                        return
                    remaining = (end_time - datetime.now()).total_seconds()
                    self._condition.wait(timeout=min(remaining, WATCH_POLL_TIME))
                    continue

            for version, event_type, content in events:
                last_version = version
                event = KubeWatchEvent(type=event_type, resource=ManagedObject(content))
                log.debug3("Yielding event %s %s", event_type.value, event.resource)
                yield event

    def create(self, definition):
        definition = copy.deepcopy(dict(definition))
        metadata = definition.setdefault("metadata", {})
        kind = definition.get("kind")
        api_version = definition.get("apiVersion")
        name = metadata.get("name")
        namespace = metadata.get("namespace") or None
        log.debug("DRY RUN create [%s/%s/%s/%s]", namespace, kind, api_version, name)

        with self._condition:
            key = self._key(api_version, kind, namespace, name)
            if key in self._cluster_content:
                raise ConflictError(
                    f"{api_version}/{kind} [{name}] already exists in [{namespace}]"
                )
            metadata.pop("resourceVersion", None)
            metadata.setdefault("uid", str(uuid.uuid4()))
            metadata.setdefault("creationTimestamp", datetime.now().isoformat())
            created = self._store(key, definition, KubeEventType.ADDED)
            if kind == "Event" and api_version == "v1":
                self._expire_events(key)
            return created

    def update(self, definition):
        return self._replace(definition, status_only=False)

    def update_status(self, definition):
        return self._replace(definition, status_only=True)

    def delete(self, kind, api_version, name, namespace=None):
        log.debug("DRY RUN delete [%s/%s/%s/%s]", namespace, kind, api_version, name)
        with self._condition:
            key = self._key(api_version, kind, namespace, name)
            content = self._cluster_content.pop(key, None)
            if content is None:
                raise NotFoundError(
                    f"{api_version}/{kind} [{name}] not found in [{namespace}]"
                )
            self._resource_version += 1
            content["metadata"]["resourceVersion"] = str(self._resource_version)
            self._log_event(KubeEventType.DELETED, content)

    ## Dry Run Methods #########################################################

    @property
    def resource_version(self) -> str:
        """The current global resource version"""
        with self._condition:
            return str(self._resource_version)

    def compact(self):
        """Drop the whole event log so that any watch resuming from an older
        version must re-list
        """
        with self._condition:
            self._compacted_version = self._resource_version
            self._event_log.clear()
            self._condition.notify_all()

    ## Implementation Details ##################################################

    @staticmethod
    def _key(api_version, kind, namespace, name) -> Tuple[str, str, str, str]:
        return (api_version or "", kind or "", namespace or "", name or "")

    @staticmethod
    def _matches(content: dict, kind, api_version, namespace) -> bool:
        metadata = content.get("metadata", {})
        return (
            content.get("kind") == kind
            and content.get("apiVersion") == api_version
            and (namespace is None or metadata.get("namespace") == namespace)
        )

    @staticmethod
    def _stopped(watch_manager: Optional[Any]) -> bool:
        # kubernetes.watch.Watch keeps its stop flag in a hidden attribute
        return bool(
            watch_manager is not None
            and getattr(watch_manager, "_stop", False)  # pylint: disable=protected-access
        )

    def _replace(self, definition: dict, status_only: bool) -> dict:
        definition = copy.deepcopy(dict(definition))
        metadata = definition.get("metadata", {})
        kind = definition.get("kind")
        api_version = definition.get("apiVersion")
        name = metadata.get("name")
        namespace = metadata.get("namespace") or None
        log.debug(
            "DRY RUN %s [%s/%s/%s/%s]",
            "update_status" if status_only else "update",
            namespace,
            kind,
            api_version,
            name,
        )

        with self._condition:
            key = self._key(api_version, kind, namespace, name)
            current = self._cluster_content.get(key)
            if current is None:
                raise NotFoundError(
                    f"{api_version}/{kind} [{name}] not found in [{namespace}]"
                )

            requested_version = metadata.get("resourceVersion")
            current_version = current["metadata"].get("resourceVersion")
            if requested_version and requested_version != current_version:
                log.warning(
                    "Rejecting write to %s/%s: resourceVersion %s is not current (%s)",
                    kind,
                    name,
                    requested_version,
                    current_version,
                )
                raise StaleResourceVersionError(
                    f"Operation cannot be fulfilled on {kind} [{name}]: "
                    "the object has been modified"
                )

            if status_only:
                updated = copy.deepcopy(current)
                updated["status"] = definition.get("status")
            else:
                updated = definition
                updated["metadata"]["uid"] = current["metadata"].get("uid")
                updated["metadata"]["creationTimestamp"] = current["metadata"].get(
                    "creationTimestamp"
                )
                updated.pop("status", None)
                if "status" in current:
                    updated["status"] = copy.deepcopy(current["status"])

            if self._same_content(current, updated):
                log.debug2("No change for %s/%s", kind, name)
                return copy.deepcopy(current)
            return self._store(key, updated, KubeEventType.MODIFIED)

    @staticmethod
    def _same_content(current: dict, updated: dict) -> bool:
        current = copy.deepcopy(current)
        updated = copy.deepcopy(updated)
        current["metadata"].pop("resourceVersion", None)
        updated["metadata"].pop("resourceVersion", None)
        return current == updated

    def _store(self, key, definition: dict, event_type: KubeEventType) -> dict:
        """Must be called with the condition held"""
        self._resource_version += 1
        definition["metadata"]["resourceVersion"] = str(self._resource_version)
        self._cluster_content[key] = definition
        self._log_event(event_type, definition)
        return copy.deepcopy(definition)

    def _expire_events(self, key: Tuple[str, str, str, str]):
        """Drop the oldest posted Events past max_events, the way the API
        server expires them. Must be called with the condition held
        """
        self._posted_events.append(key)
        while len(self._posted_events) > self._max_events:
            expired = self._posted_events.popleft()
            if self._cluster_content.pop(expired, None) is not None:
                log.debug3("Expired event %s", expired[3])

    def _log_event(self, event_type: KubeEventType, definition: dict):
        """Must be called with the condition held"""
        self._event_log.append(
            (self._resource_version, event_type, copy.deepcopy(definition))
        )
        while len(self._event_log) > self._history_size:
            self._compacted_version = self._event_log.popleft()[0]
        self._condition.notify_all()

    def _events_since(
        self, version: int, kind, api_version, namespace
    ) -> List[Tuple[int, KubeEventType, dict]]:
        """Must be called with the condition held"""
        return [
            (event_version, event_type, content)
            for event_version, event_type, content in self._event_log
            if event_version > version
            and self._matches(content, kind, api_version, namespace)
        ]

