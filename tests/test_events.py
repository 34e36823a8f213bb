"""
Tests for event recording
"""

# Third Party
import pytest

# Local
from profile_controller import constants
from profile_controller.events import (
    EventRecorder,
    NullEventRecorder,
    make_event,
    truncate_message,
)
from profile_controller.exceptions import TransientError
from profile_controller.managed_object import ManagedObject
from profile_controller.test_helpers.helpers import (
    FailOnce,
    MockResourceStore,
    RecordingEventSink,
    make_pod_default,
    make_profile,
    wait_for,
)

## Helpers #####################################################################


def posted_events(store):
    return store.list_kind("Event", "v1")


## Messages ####################################################################


def test_truncate_short_message():
    """Make sure short messages pass through"""
    assert truncate_message("hello") == "hello"
    exact = "x" * constants.MAX_EVENT_MESSAGE_LENGTH
    assert truncate_message(exact) == exact


def test_truncate_long_message():
    """Make sure long messages keep their head and tail"""
    message = "a" * 600 + "b" * 600
    truncated = truncate_message(message)
    assert len(truncated) == constants.MAX_EVENT_MESSAGE_LENGTH
    assert truncated.startswith("a" * 500)
    assert truncated.endswith("b" * 500)
    assert constants.CUT_MESSAGE_INFIX in truncated


def test_make_event_cluster_scoped():
    """Make sure events about cluster-scoped objects land in the default
    namespace and reference the object
    """
    profile = ManagedObject(make_profile("alice", uid="alice-uid"))
    body = make_event(profile, "Normal", "Synced", "ok", "test-component")
    assert body["kind"] == "Event"
    assert body["metadata"]["namespace"] == "default"
    assert body["metadata"]["name"].startswith("alice.")
    assert body["involvedObject"] == {
        "apiVersion": "kubeflow.org/v1",
        "kind": "Profile",
        "name": "alice",
        "uid": "alice-uid",
        "resourceVersion": None,
    }
    assert body["source"] == {"component": "test-component"}
    assert (body["type"], body["reason"], body["message"]) == (
        "Normal",
        "Synced",
        "ok",
    )


def test_make_event_namespaced():
    """Make sure events about namespaced objects stay in their namespace"""
    child = ManagedObject(make_pod_default("minio1-minio", "alice"))
    body = make_event(child, "Warning", "Oops", "bad", "c")
    assert body["metadata"]["namespace"] == "alice"
    assert body["involvedObject"]["namespace"] == "alice"


## Recorders ###################################################################


def test_null_recorder_accepts_dicts():
    """Make sure the null recorder takes plain definitions"""
    recorder = NullEventRecorder()
    recorder.start_thread()
    recorder.event(make_profile(), "Normal", "Synced", "ok")
    recorder.stop_thread()


def test_unknown_event_type():
    """Make sure only Normal and Warning are accepted"""
    with pytest.raises(AssertionError):
        NullEventRecorder().event(make_profile(), "Fatal", "Oops", "bad")


def test_recording_sink():
    """Make sure the test sink keeps what it was given"""
    sink = RecordingEventSink()
    sink.event(make_profile(), "Warning", "ErrResourceExists", "taken")
    assert sink.reasons == ["ErrResourceExists"]
    assert isinstance(sink.events[0][0], ManagedObject)


@pytest.mark.timeout(5)
def test_recorder_posts_events():
    """Make sure recorded events are created in the store"""
    store = MockResourceStore()
    recorder = EventRecorder(store, component="test-controller")
    recorder.start_thread()
    try:
        recorder.event(make_profile("alice"), "Normal", "Synced", "ok")
        assert wait_for(lambda: len(posted_events(store)) == 1)
    finally:
        recorder.stop_thread()
        recorder.join(timeout=3)
    event = posted_events(store)[0]
    assert event["involvedObject"]["name"] == "alice"
    assert event["reportingComponent"] == "test-controller"


@pytest.mark.timeout(5)
def test_recorder_survives_failed_post():
    """Make sure a failed post is dropped without stopping the recorder"""
    store = MockResourceStore(create_fail=FailOnce(TransientError))
    recorder = EventRecorder(store)
    recorder.start_thread()
    try:
        recorder.event(make_profile("alice"), "Warning", "First", "lost")
        recorder.event(make_profile("alice"), "Normal", "Second", "kept")
        assert wait_for(lambda: store.create.call_count == 2)
        assert wait_for(lambda: len(posted_events(store)) == 1)
    finally:
        recorder.stop_thread()
        recorder.join(timeout=3)
    assert posted_events(store)[0]["reason"] == "Second"


def test_recorder_drops_when_full():
    """Make sure the recorder never blocks the caller when its queue is full"""
    store = MockResourceStore()
    recorder = EventRecorder(store, queue_size=2)
    for i in range(5):
        recorder.event(make_profile(), "Normal", f"Reason{i}", "ok")
    assert recorder.pending() == 2
    assert not store.create.called


@pytest.mark.timeout(5)
def test_recorder_flushes_on_stop():
    """Make sure queued events are posted before the recorder exits"""
    store = MockResourceStore()
    recorder = EventRecorder(store)
    for i in range(3):
        recorder.event(make_profile(), "Normal", f"Reason{i}", "ok")
    recorder.stop_thread()
    recorder.start()
    recorder.join(timeout=3)
    assert len(posted_events(store)) == 3
