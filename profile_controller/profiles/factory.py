"""
Assembly of the Profile controller from the library config
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from .. import config
from ..cache import ResourceCache
from ..controller import Controller
from ..events import EventRecorder, NullEventRecorder
from ..exceptions import assert_config
from ..policy import PolicyConfigurer, PolicyStoreBase, VaultPolicyStore
from ..status import StatusPublisher
from ..store import ResourceStoreBase
from .reconciler import ProfileReconciler

log = alog.use_channel("PRFCT")

# Status key listing the managed PodDefaults
POD_DEFAULTS_FIELD = "podDefaults"


def build_profile_controller(
    store: ResourceStoreBase,
    policy_store: Optional[PolicyStoreBase] = None,
) -> Controller:
    """Build the controller reconciling Profiles into PodDefaults

    Args:
        store:  ResourceStoreBase
            The store to read and write resources through
        policy_store:  Optional[PolicyStoreBase]
            The store policies are applied to when vault.enabled is set.
            Defaults to the Vault HTTP API

    Returns:
        controller:  Controller
            The controller, ready to run
    """
    parent_cache = ResourceCache(store, config.profile.kind, config.profile.api_version)
    child_cache = ResourceCache(
        store, config.pod_default.kind, config.pod_default.api_version
    )

    if config.events.enabled:
        recorder = EventRecorder(store)
    else:
        log.debug("Event posting disabled")
        recorder = NullEventRecorder()

    policy_configurer = None
    if config.vault.enabled:
        log.info("Managing Vault policies at %s", config.vault.address)
        if policy_store is None:
            assert_config(
                bool(config.vault.token), "vault.token must be set when vault.enabled"
            )
            policy_store = VaultPolicyStore()
        policy_configurer = PolicyConfigurer(policy_store)

    reconciler = ProfileReconciler(
        parent_cache,
        child_cache,
        store,
        recorder=recorder,
        status_publisher=StatusPublisher(store, children_field=POD_DEFAULTS_FIELD),
        minio_instances=config.vault.minio_instances,
        policy_configurer=policy_configurer,
    )
    return Controller(
        parent_cache,
        child_cache,
        reconciler,
        recorder=recorder,
        cluster_scoped_parent=True,
    )
