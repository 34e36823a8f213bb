"""
Event recording attaches operator-visible diagnostics to the objects being
reconciled. Recording is fire-and-forget: the caller never waits on the post
and a failed post never fails a reconciliation.
"""

# Standard
from datetime import datetime, timezone
from typing import Mapping, Optional, Union
import queue
import time

# First Party
import alog

# Local
from . import config, constants
from .exceptions import ControllerError
from .managed_object import ManagedObject
from .store import ResourceStoreBase
from .threads import ThreadBase

log = alog.use_channel("EVENT")

# Seconds the poster waits for an event before re-checking for shutdown
POLL_INTERVAL = 0.5

# Namespace used for events about cluster-scoped objects
DEFAULT_EVENT_NAMESPACE = "default"

EVENT_TYPES = [constants.EVENT_TYPE_NORMAL, constants.EVENT_TYPE_WARNING]


def truncate_message(message: str) -> str:
    """Shorten a message that would be rejected as too long by cutting out the
    middle
    """
    max_length = constants.MAX_EVENT_MESSAGE_LENGTH
    if len(message) <= max_length:
        return message
    infix = constants.CUT_MESSAGE_INFIX
    prefix = message[: max_length // 2 - len(infix) // 2]
    suffix = message[-(max_length - len(prefix) - len(infix)) :]
    return f"{prefix}{infix}{suffix}"


def make_event(
    obj: ManagedObject,
    event_type: str,
    reason: str,
    message: str,
    component: str,
) -> dict:
    """Build the v1/Event body for an event about obj"""
    now = datetime.now(timezone.utc)
    namespace = obj.namespace or DEFAULT_EVENT_NAMESPACE
    involved_object = {
        "apiVersion": obj.api_version,
        "kind": obj.kind,
        "name": obj.name,
        "uid": obj.uid,
        "resourceVersion": obj.resource_version,
    }
    if obj.namespace:
        involved_object["namespace"] = obj.namespace
    return {
        "apiVersion": "v1",
        "kind": "Event",
        "metadata": {
            "name": f"{obj.name}.{time.time_ns():x}",
            "namespace": namespace,
        },
        "involvedObject": involved_object,
        "type": event_type,
        "reason": reason,
        "message": truncate_message(message),
        "count": 1,
        "reportingComponent": component,
        "source": {"component": component},
        "firstTimestamp": now.isoformat(),
        "lastTimestamp": now.isoformat(),
        "eventTime": now.isoformat(),
    }


class NullEventRecorder:
    """Event sink that only logs. Used when event posting is disabled."""

    def event(
        self,
        obj: Union[ManagedObject, Mapping],
        event_type: str,
        reason: str,
        message: str,
    ):
        """Record an event about obj

        Args:
            obj:  Union[ManagedObject, Mapping]
                The object the event is about
            event_type:  str
                Normal or Warning
            reason:  str
                Short CamelCase reason
            message:  str
                Human readable detail
        """
        assert event_type in EVENT_TYPES, f"Unknown event type {event_type}"
        if not isinstance(obj, ManagedObject):
            obj = ManagedObject(obj)
        log_fn = log.warning if event_type == constants.EVENT_TYPE_WARNING else log.info
        log_fn(
            "Event(%s): type: '%s' reason: '%s' %s",
            obj,
            event_type,
            reason,
            message,
            extra={"resource": obj},
        )
        self._post(obj, event_type, reason, message)

    def start_thread(self):
        pass

    def stop_thread(self):
        pass

    def _post(self, obj: ManagedObject, event_type: str, reason: str, message: str):
        pass


class EventRecorder(NullEventRecorder, ThreadBase):
    """Event sink that posts v1/Event objects to the store from a background
    thread. Events beyond the queue size are dropped.
    """

    def __init__(
        self,
        store: ResourceStoreBase,
        component: Optional[str] = None,
        queue_size: Optional[int] = None,
    ):
        """
        Args:
            store:  ResourceStoreBase
                The store to create events in
            component:  Optional[str]
                The reporting component. Defaults to controller.name
            queue_size:  Optional[int]
                Max events waiting to be posted. Defaults to events.queue_size
        """
        ThreadBase.__init__(self, name="event_recorder", daemon=True)
        self.store = store
        self.component = component or config.controller.name
        self._events = queue.Queue(maxsize=queue_size or config.events.queue_size)

    def run(self):
        """Post queued events until stopped. Events still queued at shutdown are
        posted before exiting.
        """
        while True:
            try:
                body = self._events.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                if self.should_stop():
                    return
                continue
            self._create(body)

    ## Class Interface #########################################################

    def start_thread(self):
        ThreadBase.start_thread(self)

    def stop_thread(self):
        ThreadBase.stop_thread(self)

    ## Implementation Details ##################################################

    def _post(self, obj, event_type, reason, message):
        body = make_event(obj, event_type, reason, message, self.component)
        try:
            self._events.put_nowait(body)
        except queue.Full:
            log.warning("Event queue full. Dropping %s event for %s", reason, obj)

    def _create(self, body: dict):
        try:
            self.store.create(body)
            log.debug2("Posted event %s", body["metadata"]["name"])
        except ControllerError as err:
            log.warning(
                "Failed to post an event. Ignoring and continuing. "
                "Event: type=%r, reason=%r, message=%r: %s",
                body.get("type"),
                body.get("reason"),
                body.get("message"),
                err,
            )

    def pending(self) -> int:
        """Number of events waiting to be posted"""
        return self._events.qsize()
