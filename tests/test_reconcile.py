"""
Tests for the Reconciler sync algorithm
"""

# Third Party
import pytest

# Local
from profile_controller import constants
from profile_controller.exceptions import (
    MalformedItemError,
    OwnershipConflictError,
    TransientError,
)
from profile_controller.reconcile import ChildSpec, Reconciler, spec_differs
from profile_controller.status import get_condition
from profile_controller.managed_object import ManagedObject
from profile_controller.test_helpers.helpers import (
    POD_DEFAULT_API_VERSION,
    POD_DEFAULT_KIND,
    PROFILE_API_VERSION,
    PROFILE_KIND,
    MockResourceStore,
    RecordingEventSink,
    make_pod_default,
    make_profile,
    make_snapshot_caches,
)

## Helpers #####################################################################


def build_child(parent):
    return {
        "apiVersion": POD_DEFAULT_API_VERSION,
        "kind": POD_DEFAULT_KIND,
        "spec": {"desc": f"child of {parent.name}", "selector": {"matchLabels": {}}},
    }


class SimpleReconciler(Reconciler):
    """Reconciler declaring a fixed list of child names"""

    def __init__(self, *args, child_names=("one", "two"), **kwargs):
        super().__init__(*args, **kwargs)
        self.child_names = child_names
        self.after_children_calls = []

    def child_specs(self, parent):
        return [ChildSpec(name=name, build=build_child) for name in self.child_names]

    def after_children(self, parent, children):
        self.after_children_calls.append((parent.name, [c.name for c in children]))


def setup_reconciler(*resources, **kwargs):
    store = MockResourceStore(resources=list(resources))
    parent_cache, child_cache = make_snapshot_caches(store)
    recorder = RecordingEventSink()
    reconciler = SimpleReconciler(
        parent_cache, child_cache, store, recorder=recorder, **kwargs
    )
    return reconciler, store, recorder


def refresh(reconciler):
    reconciler.parent_cache.refresh()
    reconciler.child_cache.refresh()


def get_profile(store, name="profile-test"):
    return store.get_obj(PROFILE_KIND, PROFILE_API_VERSION, name)


def get_child(store, name, namespace="profile-test"):
    return store.get_obj(POD_DEFAULT_KIND, POD_DEFAULT_API_VERSION, name, namespace)


## Happy Path ##################################################################


def test_sync_creates_children():
    """Make sure missing children are created in the parent's namespace,
    controlled by the parent
    """
    profile = make_profile(uid="parent-uid")
    reconciler, store, recorder = setup_reconciler(profile)
    reconciler.sync("profile-test")

    for name in ["one", "two"]:
        child = get_child(store, name)
        assert child is not None
        assert child["spec"]["desc"] == "child of profile-test"
        (owner_ref,) = child["metadata"]["ownerReferences"]
        assert owner_ref["uid"] == "parent-uid"
        assert owner_ref["controller"] is True

    status = get_profile(store)["status"]
    assert status["children"] == ["one", "two"]
    assert get_condition("Synced", status)["status"] == "True"
    assert recorder.reasons == [constants.SUCCESS_SYNCED]
    assert reconciler.after_children_calls == [("profile-test", ["one", "two"])]


def test_sync_is_idempotent():
    """Make sure a second sync of a parent in sync makes no writes"""
    reconciler, store, _ = setup_reconciler(make_profile())
    reconciler.sync("profile-test")
    refresh(reconciler)
    store.create.reset_mock()
    store.update_status.reset_mock()

    reconciler.sync("profile-test")
    assert not store.create.called
    assert not store.update.called
    assert not store.update_status.called


def test_sync_missing_parent():
    """Make sure a key whose parent is gone finishes without writes"""
    reconciler, store, recorder = setup_reconciler()
    reconciler.sync("nobody")
    assert not store.create.called
    assert not recorder.events


def test_sync_empty_child_name():
    """Make sure an empty declared child name aborts the sync without error"""
    reconciler, store, recorder = setup_reconciler(
        make_profile(), child_names=("one", "")
    )
    reconciler.sync("profile-test")
    assert not store.create.called
    assert not store.update_status.called
    assert not recorder.events


def test_sync_malformed_key():
    """Make sure an unparseable key is rejected as malformed"""
    reconciler, _, _ = setup_reconciler(make_profile())
    with pytest.raises(MalformedItemError):
        reconciler.sync("a/b/c")


## Ownership ###################################################################


def test_sync_ownership_conflict():
    """Make sure a child not controlled by the parent is left alone and the
    conflict is surfaced
    """
    profile = make_profile(uid="parent-uid")
    stranger = make_pod_default("one", spec={"desc": "not yours"})
    reconciler, store, recorder = setup_reconciler(profile, stranger)

    with pytest.raises(OwnershipConflictError) as exc_info:
        reconciler.sync("profile-test")
    assert exc_info.value.name == "one"
    assert exc_info.value.is_retryable

    assert get_child(store, "one")["spec"] == {"desc": "not yours"}
    assert "ownerReferences" not in get_child(store, "one")["metadata"]
    assert not store.update.called
    assert recorder.events[0][1] == constants.EVENT_TYPE_WARNING
    assert recorder.reasons == [constants.ERR_RESOURCE_EXISTS]
    assert recorder.events[0][3] == (
        'Resource "one" already exists and is not managed by Profile'
    )

    cond = get_condition("Synced", get_profile(store)["status"])
    assert cond["status"] == "False"
    assert cond["reason"] == constants.ERR_RESOURCE_EXISTS


def test_sync_child_of_recreated_parent():
    """Make sure a child controlled by a previous parent with the same name is
    a conflict
    """
    old_profile = make_profile(uid="old-uid")
    new_profile = make_profile(uid="new-uid")
    reconciler, store, _ = setup_reconciler(
        new_profile, make_pod_default("one", owner=old_profile)
    )
    with pytest.raises(OwnershipConflictError):
        reconciler.sync("profile-test")
    assert not store.update.called


def test_sync_conflict_status_failure_still_raises():
    """Make sure a failed status write does not hide the ownership conflict"""
    profile = make_profile()
    store = MockResourceStore(
        resources=[profile, make_pod_default("one")],
        update_status_fail=TransientError,
    )
    parent_cache, child_cache = make_snapshot_caches(store)
    reconciler = SimpleReconciler(parent_cache, child_cache, store)
    with pytest.raises(OwnershipConflictError):
        reconciler.sync("profile-test")


## Drift #######################################################################


def test_sync_repairs_drift():
    """Make sure a controlled child whose spec drifted is restored and keeps
    its metadata
    """
    profile = make_profile(uid="parent-uid")
    reconciler, store, _ = setup_reconciler(profile)
    reconciler.sync("profile-test")

    drifted = get_child(store, "one")
    drifted["spec"]["desc"] = "edited by hand"
    drifted["metadata"]["labels"] = {"edited": "true"}
    store.update(drifted)
    refresh(reconciler)
    store.update.reset_mock()

    reconciler.sync("profile-test")
    assert store.update.call_count == 1
    repaired = get_child(store, "one")
    assert repaired["spec"]["desc"] == "child of profile-test"
    assert repaired["metadata"]["labels"] == {"edited": "true"}
    assert repaired["metadata"]["ownerReferences"][0]["uid"] == "parent-uid"


def test_spec_differs():
    """Make sure the default drift check only compares spec blocks"""
    existing = ManagedObject(make_pod_default("one", spec={"a": 1}))
    assert not spec_differs(existing, {"spec": {"a": 1}, "metadata": {"x": 1}})
    assert spec_differs(existing, {"spec": {"a": 2}})


def test_custom_needs_update():
    """Make sure a child spec can bring its own drift check"""
    profile = make_profile()
    reconciler, store, _ = setup_reconciler(profile, child_names=("one",))
    reconciler.sync("profile-test")
    drifted = get_child(store, "one")
    drifted["spec"]["desc"] = "edited by hand"
    store.update(drifted)
    refresh(reconciler)
    store.update.reset_mock()

    reconciler.child_specs = lambda parent: [
        ChildSpec(name="one", build=build_child, needs_update=lambda *_: False)
    ]
    reconciler.sync("profile-test")
    assert not store.update.called


## Errors ######################################################################


def test_sync_write_failure_propagates():
    """Make sure a failed create fails the sync without publishing status"""
    store = MockResourceStore(resources=[make_profile()], create_fail=TransientError)
    parent_cache, child_cache = make_snapshot_caches(store)
    recorder = RecordingEventSink()
    reconciler = SimpleReconciler(parent_cache, child_cache, store, recorder=recorder)
    with pytest.raises(TransientError):
        reconciler.sync("profile-test")
    assert not store.update_status.called
    assert not recorder.events
