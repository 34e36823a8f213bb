"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import Callable, List, Optional, Tuple
from unittest import mock
import copy
import inspect
import os
import time
import uuid

# First Party
import aconfig
import alog

# Local
from profile_controller.cache import ResourceCache
from profile_controller.config import library_config as config_detail_dict
from profile_controller.events import NullEventRecorder
from profile_controller.managed_object import ManagedObject
from profile_controller.store import DryRunResourceStore, make_controller_reference
from profile_controller.utils import merge_configs

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_PROFILE_NAME = "profile-test"

PROFILE_KIND = "Profile"
PROFILE_API_VERSION = "kubeflow.org/v1"
POD_DEFAULT_KIND = "PodDefault"
POD_DEFAULT_API_VERSION = "kubeflow.org/v1alpha1"

## Resource Builders ###########################################################


def make_profile(
    name: str = TEST_PROFILE_NAME,
    uid: Optional[str] = None,
    spec: Optional[dict] = None,
    status: Optional[dict] = None,
    **metadata,
) -> dict:
    """Make a cluster-scoped Profile definition"""
    profile = {
        "apiVersion": PROFILE_API_VERSION,
        "kind": PROFILE_KIND,
        "metadata": {"name": name, "uid": uid or str(uuid.uuid4()), **metadata},
        "spec": spec or {"owner": {"kind": "User", "name": f"{name}@example.com"}},
    }
    if status is not None:
        profile["status"] = status
    return profile


def make_owner_ref(owner, controller: bool = True) -> dict:
    """Make an owner reference entry pointing at owner"""
    owner_ref = make_controller_reference(owner)
    if not controller:
        owner_ref["controller"] = False
        owner_ref["blockOwnerDeletion"] = False
    return owner_ref


def make_pod_default(
    name: str,
    namespace: str = TEST_PROFILE_NAME,
    owner=None,
    spec: Optional[dict] = None,
    controller: bool = True,
) -> dict:
    """Make a PodDefault, optionally owned by the given object"""
    pod_default = {
        "apiVersion": POD_DEFAULT_API_VERSION,
        "kind": POD_DEFAULT_KIND,
        "metadata": {"name": name, "namespace": namespace},
        "spec": spec or {"desc": "hand made", "selector": {"matchLabels": {}}},
    }
    if owner is not None:
        pod_default["metadata"]["ownerReferences"] = [
            make_owner_ref(owner, controller=controller)
        ]
    return pod_default


## Config ######################################################################


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion. Nested dicts are merged into the current values.
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
            if isinstance(val, dict) and isinstance(old_vals[key], dict):
                val = merge_configs(copy.deepcopy(dict(old_vals[key])), val)
        if isinstance(val, dict):
            val = aconfig.AttributeAccessDict(val)
        config_detail_dict[key] = val

    # Yield to the context
    try:
        yield
    finally:
        # Revert to the old values
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


## Failure Injection ###########################################################


def get_failable_method(fail_flag, method):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        log.debug4(
            "Running failable mock of [%s] with fail flag: %s", str(method), fail_flag
        )
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            fail_flag()
        log.debug4("Passing through (%s, **%s)", args, kwargs)
        return method(*args, **kwargs)

    return failable_method


class FailOnce:
    """Helper callable that will raise once on the N'th call"""

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            if isinstance(self.fail_val, type) and issubclass(self.fail_val, Exception):
                raise self.fail_val("Raising!")
            raise self.fail_val
        log.debug("Not failing on call %d", self.call_count)


class MockResourceStore(DryRunResourceStore):
    """The MockResourceStore wraps a standard DryRunResourceStore and adds
    configuration options to simulate failures in each of its operations.
    Every operation is a mock.Mock so calls can be inspected.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        get_fail=False,
        list_fail=False,
        watch_fail=False,
        create_fail=False,
        update_fail=False,
        update_status_fail=False,
        delete_fail=False,
        resources=None,
        **kwargs,
    ):
        """Each *_fail flag may be an exception (class or instance) to raise or
        a callable run before passing through, e.g. a FailOnce
        """
        super().__init__(resources=resources, **kwargs)
        self.get = mock.Mock(side_effect=get_failable_method(get_fail, super().get))
        self.list = mock.Mock(side_effect=get_failable_method(list_fail, super().list))
        self.watch = mock.Mock(
            side_effect=get_failable_method(watch_fail, super().watch)
        )
        self.create = mock.Mock(
            side_effect=get_failable_method(create_fail, super().create)
        )
        self.update = mock.Mock(
            side_effect=get_failable_method(update_fail, super().update)
        )
        self.update_status = mock.Mock(
            side_effect=get_failable_method(update_status_fail, super().update_status)
        )
        self.delete = mock.Mock(
            side_effect=get_failable_method(delete_fail, super().delete)
        )

    def get_obj(self, kind, api_version, name, namespace=None) -> Optional[dict]:
        """Get an object or None without going through the mocks"""
        items, _ = DryRunResourceStore.list(self, kind, api_version, namespace)
        for item in items:
            if item["metadata"]["name"] == name:
                return item
        return None

    def list_kind(self, kind, api_version) -> List[dict]:
        return DryRunResourceStore.list(self, kind, api_version)[0]


## Caches and Sinks ############################################################


class SnapshotCache(ResourceCache):
    """ResourceCache that is filled on demand by refresh() instead of a running
    thread
    """

    def refresh(self):
        self._relist()
        return self


def make_snapshot_caches(store) -> Tuple[SnapshotCache, SnapshotCache]:
    """Make refreshed parent and child caches for Profiles and PodDefaults"""
    parent_cache = SnapshotCache(store, PROFILE_KIND, PROFILE_API_VERSION).refresh()
    child_cache = SnapshotCache(
        store, POD_DEFAULT_KIND, POD_DEFAULT_API_VERSION
    ).refresh()
    return parent_cache, child_cache


class RecordingEventSink(NullEventRecorder):
    """Event sink that remembers every event it is given"""

    def __init__(self):
        self.events: List[Tuple[ManagedObject, str, str, str]] = []

    def _post(self, obj, event_type, reason, message):
        self.events.append((obj, event_type, reason, message))

    @property
    def reasons(self) -> List[str]:
        return [event[2] for event in self.events]


def wait_for(condition: Callable[[], bool], timeout: float = 3.0) -> bool:
    """Poll a condition until it holds or the timeout passes"""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()
