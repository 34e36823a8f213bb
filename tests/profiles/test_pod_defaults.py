"""
Tests for the PodDefault rendering
"""

# Local
from profile_controller.managed_object import ManagedObject
from profile_controller.profiles import build_pod_default, pod_default_name
from profile_controller.profiles.pod_defaults import (
    inject_label,
    minio_secret_path,
    vault_annotations,
)
from profile_controller.test_helpers.helpers import make_profile


def test_names():
    """Make sure names derive from the instance and profile"""
    assert pod_default_name("minio1") == "minio1-minio"
    assert inject_label("minio1") == "minio-minio1-inject"
    assert minio_secret_path("minio1", "alice") == "minio1/keys/alice"


def test_vault_annotations():
    """Make sure the Vault agent is asked to render the instance's keys"""
    annotations = vault_annotations("minio1", "alice")
    assert annotations["vault.hashicorp.com/agent-inject"] == "true"
    assert annotations["vault.hashicorp.com/role"] == "profile-alice"
    assert (
        annotations["vault.hashicorp.com/agent-inject-secret-minio-minio1.env"]
        == "minio1/keys/alice"
    )
    template = annotations["vault.hashicorp.com/agent-inject-template-minio-minio1.env"]
    assert template.startswith('{{- with secret "minio1/keys/alice" }}\n')
    assert 'export MINIO_ACCESS_KEY="{{ .Data.MINIO_ACCESS_KEY }}"' in template
    assert template.endswith("{{- end }}\n")


def test_build_pod_default():
    """Make sure the PodDefault lives in the profile's namespace and selects
    pods by the inject label
    """
    profile = ManagedObject(make_profile("alice"))
    pod_default = build_pod_default("minio1", profile)
    assert pod_default["kind"] == "PodDefault"
    assert pod_default["apiVersion"] == "kubeflow.org/v1alpha1"
    assert pod_default["metadata"] == {"name": "minio1-minio", "namespace": "alice"}
    assert pod_default["spec"]["selector"] == {
        "matchLabels": {"minio-minio1-inject": "true"}
    }
    assert pod_default["spec"]["annotations"] == vault_annotations("minio1", "alice")
    assert "ownerReferences" not in pod_default["metadata"]


def test_build_pod_default_deterministic():
    """Make sure rebuilding gives the same definition"""
    profile = ManagedObject(make_profile("alice"))
    assert build_pod_default("minio1", profile) == build_pod_default("minio1", profile)
