"""
Tests for the json log formatter
"""
# Standard
import json
import logging

# Local
from profile_controller.log_format import ControllerJsonFormatter
from profile_controller.managed_object import ManagedObject
from profile_controller.test_helpers.helpers import make_pod_default, make_profile


def format_record(**extra):
    record = logging.makeLogRecord(
        {
            "name": "TEST",
            "levelno": logging.INFO,
            "levelname": "INFO",
            "msg": "hello %s",
            "args": ("world",),
            **extra,
        }
    )
    return json.loads(ControllerJsonFormatter().format(record))


def test_resource_fields():
    """Make sure the identity of a logged resource is included"""
    child_def = make_pod_default("minio1-minio", "alice")
    child_def["metadata"]["resourceVersion"] = "7"
    formatted = format_record(resource=ManagedObject(child_def))
    assert formatted["kind"] == "PodDefault"
    assert formatted["apiVersion"] == "kubeflow.org/v1alpha1"
    assert formatted["resourceName"] == "minio1-minio"
    assert formatted["resourceVersion"] == "7"
    assert formatted["reconcileKey"] == "alice/minio1-minio"


def test_key_field():
    """Make sure an explicit key wins over the resource's own key"""
    formatted = format_record(key="bob", resource=ManagedObject(make_profile("alice")))
    assert formatted["reconcileKey"] == "bob"
    assert formatted["resourceName"] == "alice"


def test_plain_dict_resource():
    """Make sure plain definitions are accepted as resources"""
    formatted = format_record(resource=make_profile("alice"))
    assert formatted["reconcileKey"] == "alice"


def test_no_extras():
    """Make sure records without extras still format"""
    formatted = format_record()
    assert "reconcileKey" not in formatted
    assert "threadName" in formatted
