"""
The ResourceStore is the abstraction in charge of interacting with the
kubernetes cluster to look up, create, update, and watch resources.
"""

# Local
from .base import ResourceStoreBase
from .dry_run_store import DryRunResourceStore
from .kube_event import KubeEventType, KubeWatchEvent
from .openshift_store import OpenshiftResourceStore
from .owner_references import (
    OwnerReference,
    get_controller_of,
    is_controlled_by,
    make_controller_reference,
    set_controller_reference,
)
