"""
Tests for the OpenshiftResourceStore error translation. The client is mocked
so no cluster is needed.
"""
# Standard
from unittest import mock

# Third Party
from kubernetes.client.exceptions import ApiException
from openshift.dynamic.exceptions import ConflictError as OpenshiftConflictError
from openshift.dynamic.exceptions import NotFoundError as OpenshiftNotFoundError
from openshift.dynamic.exceptions import ResourceNotFoundError
import pytest
import urllib3

# Local
from profile_controller.exceptions import (
    ConflictError,
    ExpiredResourceVersionError,
    NotFoundError,
    StaleResourceVersionError,
    TransientError,
)
from profile_controller.store import KubeEventType, OpenshiftResourceStore
from profile_controller.test_helpers.helpers import library_config, make_profile

## Helpers #####################################################################


def make_store():
    client = mock.MagicMock()
    handle = mock.MagicMock()
    client.resources.get.return_value = handle
    return OpenshiftResourceStore(dynamic_client=client), client, handle


def api_error(error_type, status):
    return error_type(ApiException(status=status, reason="test"))


def dict_result(value):
    result = mock.MagicMock()
    result.to_dict.return_value = value
    return result


## Tests #######################################################################


def test_get_passes_through():
    """Make sure a successful get returns the dict form"""
    store, _, handle = make_store()
    profile = make_profile()
    handle.get.return_value = dict_result(profile)
    assert store.get("Profile", "kubeflow.org/v1", "profile-test") == profile
    handle.get.assert_called_once_with(name="profile-test", namespace=None)


def test_list_returns_version():
    """Make sure list returns the items and the list resourceVersion"""
    store, _, handle = make_store()
    handle.get.return_value = dict_result(
        {"items": [make_profile()], "metadata": {"resourceVersion": "42"}}
    )
    items, version = store.list("Profile", "kubeflow.org/v1")
    assert len(items) == 1
    assert version == "42"


def test_get_not_found():
    """Make sure a missing object becomes NotFoundError"""
    store, _, handle = make_store()
    handle.get.side_effect = api_error(OpenshiftNotFoundError, 404)
    with pytest.raises(NotFoundError):
        store.get("Profile", "kubeflow.org/v1", "profile-test")


def test_unknown_resource_type():
    """Make sure an unknown kind is a transient error"""
    store, client, _ = make_store()
    client.resources.get.side_effect = ResourceNotFoundError("nope")
    with pytest.raises(TransientError):
        store.get("Profile", "kubeflow.org/v1", "profile-test")


def test_create_conflict():
    """Make sure a create collision becomes ConflictError"""
    store, _, handle = make_store()
    handle.create.side_effect = api_error(OpenshiftConflictError, 409)
    with pytest.raises(ConflictError) as exc_info:
        store.create(make_profile())
    assert not isinstance(exc_info.value, StaleResourceVersionError)


@pytest.mark.parametrize("method", ["update", "update_status"])
def test_update_conflict_is_stale(method):
    """Make sure a rejected replace becomes StaleResourceVersionError"""
    store, _, handle = make_store()
    handle.replace.side_effect = api_error(OpenshiftConflictError, 409)
    handle.status.replace.side_effect = api_error(OpenshiftConflictError, 409)
    with pytest.raises(StaleResourceVersionError):
        getattr(store, method)(make_profile())


def test_transient_errors_retried():
    """Make sure transient failures are retried before giving up"""
    store, _, handle = make_store()
    handle.get.side_effect = [
        urllib3.exceptions.HTTPError("boom"),
        dict_result(make_profile()),
    ]
    with library_config(store={"retries": 1}):
        assert store.get("Profile", "kubeflow.org/v1", "profile-test")
    assert handle.get.call_count == 2


def test_transient_errors_exhausted():
    """Make sure persistent failures become TransientError"""
    store, _, handle = make_store()
    handle.delete.side_effect = urllib3.exceptions.HTTPError("boom")
    with library_config(store={"retries": 2}):
        with pytest.raises(TransientError):
            store.delete("Profile", "kubeflow.org/v1", "profile-test")
    assert handle.delete.call_count == 3


def test_watch_translates_events():
    """Make sure raw watch events become KubeWatchEvents"""
    store, _, _ = make_store()
    watch_manager = mock.MagicMock()
    watch_manager.stream.return_value = iter(
        [
            {"type": "ADDED", "object": make_profile()},
            {"type": "DELETED", "object": make_profile()},
        ]
    )
    events = list(
        store.watch("Profile", "kubeflow.org/v1", watch_manager=watch_manager)
    )
    assert [event.type for event in events] == [
        KubeEventType.ADDED,
        KubeEventType.DELETED,
    ]
    assert events[0].resource.name == "profile-test"


def test_watch_gone_is_expired():
    """Make sure a 410 from the watch becomes ExpiredResourceVersionError"""
    store, _, _ = make_store()
    watch_manager = mock.MagicMock()
    watch_manager.stream.side_effect = ApiException(status=410, reason="Gone")
    with pytest.raises(ExpiredResourceVersionError):
        list(
            store.watch(
                "Profile",
                "kubeflow.org/v1",
                resource_version="1",
                watch_manager=watch_manager,
            )
        )


def test_watch_timeout_ends_stream():
    """Make sure a socket timeout ends the stream quietly"""
    store, _, _ = make_store()
    watch_manager = mock.MagicMock()
    watch_manager.stream.side_effect = urllib3.exceptions.ReadTimeoutError(
        None, None, "timeout"
    )
    assert not list(
        store.watch("Profile", "kubeflow.org/v1", watch_manager=watch_manager)
    )
