"""
The ProfileReconciler keeps one PodDefault per MinIO instance in each
profile's namespace and, when enabled, the profile's Vault policy and KV mount
"""

# Standard
from functools import partial
from typing import List, Optional, Sequence

# First Party
import alog

# Local
from .. import config
from ..managed_object import ManagedObject
from ..policy import PolicyConfigurer
from ..reconcile import ChildSpec, Reconciler
from .pod_defaults import build_pod_default, pod_default_name

log = alog.use_channel("PRFRC")


class ProfileReconciler(Reconciler):
    """Reconciler for Profile parents and PodDefault children"""

    def __init__(
        self,
        *args,
        minio_instances: Optional[Sequence[str]] = None,
        policy_configurer: Optional[PolicyConfigurer] = None,
        **kwargs,
    ):
        """
        Args:
            *args, **kwargs:
                Passed through to Reconciler
            minio_instances:  Optional[Sequence[str]]
                MinIO instances each profile gets credentials for. Defaults to
                vault.minio_instances
            policy_configurer:  Optional[PolicyConfigurer]
                If given, every profile's policy and KV mount are kept in place
        """
        super().__init__(*args, **kwargs)
        if minio_instances is None:
            minio_instances = config.vault.minio_instances
        self.minio_instances: List[str] = list(minio_instances)
        self.policy_configurer = policy_configurer

    def child_specs(self, parent: ManagedObject) -> List[ChildSpec]:
        return [
            ChildSpec(
                name=pod_default_name(instance),
                build=partial(build_pod_default, instance),
            )
            for instance in self.minio_instances
        ]

    def after_children(self, parent: ManagedObject, children: List[ManagedObject]):
        if self.policy_configurer is None:
            return
        policy_name = self.policy_configurer.configure_profile(parent.name)
        log.debug("Policy %s in place for %s", policy_name, parent)
