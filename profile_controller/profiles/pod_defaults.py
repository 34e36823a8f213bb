"""
Rendering of the PodDefaults that give a profile's pods access to their MinIO
credentials through the Vault agent
"""

# Standard
from typing import Dict

# First Party
import alog

# Local
from .. import config
from ..managed_object import ManagedObject

log = alog.use_channel("PODDF")

# Prefix of every Vault agent annotation
VAULT_ANNOTATION_PREFIX = "vault.hashicorp.com"

# Agent template rendering the MinIO keys as an env file
MINIO_CREDENTIALS_TEMPLATE = """{{{{- with secret "{secret_path}" }}}}
export MINIO_URL="{{{{ .Data.MINIO_URL }}}}"
export MINIO_ACCESS_KEY="{{{{ .Data.MINIO_ACCESS_KEY }}}}"
export MINIO_SECRET_KEY="{{{{ .Data.MINIO_SECRET_KEY }}}}"
{{{{- end }}}}
"""


def pod_default_name(instance: str) -> str:
    return f"{instance}-minio"


def inject_label(instance: str) -> str:
    """Label pods carry to receive the credentials of an instance"""
    return f"minio-{instance}-inject"


def minio_secret_path(instance: str, profile_name: str) -> str:
    return f"{instance}/keys/{profile_name}"


def vault_annotations(instance: str, profile_name: str) -> Dict[str, str]:
    """Annotations asking the Vault agent to render the instance's keys"""
    secret_path = minio_secret_path(instance, profile_name)
    secret_file = f"minio-{instance}.env"
    return {
        f"{VAULT_ANNOTATION_PREFIX}/agent-inject": "true",
        f"{VAULT_ANNOTATION_PREFIX}/role": f"profile-{profile_name}",
        f"{VAULT_ANNOTATION_PREFIX}/agent-inject-secret-{secret_file}": secret_path,
        f"{VAULT_ANNOTATION_PREFIX}/agent-inject-template-{secret_file}": (
            MINIO_CREDENTIALS_TEMPLATE.format(secret_path=secret_path)
        ),
    }


def build_pod_default(instance: str, profile: ManagedObject) -> dict:
    """Build the desired PodDefault for one MinIO instance of a profile

    Args:
        instance:  str
            The MinIO instance name
        profile:  ManagedObject
            The owning profile

    Returns:
        pod_default:  dict
            The PodDefault definition without owner references
    """
    log.debug3("Building PodDefault for %s in %s", instance, profile.name)
    return {
        "apiVersion": config.pod_default.api_version,
        "kind": config.pod_default.kind,
        "metadata": {
            "name": pod_default_name(instance),
            "namespace": profile.name,
        },
        "spec": {
            "desc": f"Inject credentials for MinIO instance {instance}",
            "selector": {"matchLabels": {inject_label(instance): "true"}},
            "annotations": vault_annotations(instance, profile.name),
        },
    }
