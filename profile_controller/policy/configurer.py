"""
The PolicyConfigurer keeps each profile's policy and KV mount in place
"""

# Standard
from typing import List, Optional, Sequence

# First Party
import alog

# Local
from .. import config, constants
from .store import PolicyStoreBase
from .template import default_storage_path, render_policy

log = alog.use_channel("PLCYC")


class PolicyConfigurer:
    """Idempotent upserts of profile policies and KV mounts"""

    def __init__(
        self,
        store: PolicyStoreBase,
        backing_stores: Optional[Sequence[str]] = None,
        policy_path: Optional[str] = None,
    ):
        """
        Args:
            store:  PolicyStoreBase
                Where policies and mounts live
            backing_stores:  Optional[Sequence[str]]
                Backing store names granted read access in every policy.
                Defaults to vault.minio_instances
            policy_path:  Optional[str]
                Path under which policies are stored. Defaults to
                vault.policy_path
        """
        self.store = store
        if backing_stores is None:
            backing_stores = config.vault.minio_instances
        self.backing_stores: List[str] = list(backing_stores)
        self.policy_path = (policy_path or config.vault.policy_path).rstrip("/")

    def apply_policy(self, profile_name: str, storage_path: Optional[str] = None) -> str:
        """Make sure the stored policy for the profile matches the rendered one,
        writing it only when it is missing or differs

        Args:
            profile_name:  str
                The profile whose policy to apply
            storage_path:  Optional[str]
                The KV path granted full access

        Returns:
            policy_name:  str
                The name the policy is stored under
        """
        policy = render_policy(profile_name, self.backing_stores, storage_path)
        path = f"{self.policy_path}/{profile_name}"
        current = self.store.read(path)
        if current is not None and current.get("policy") == policy:
            log.debug("Policy %s is up to date", profile_name)
            return profile_name

        log.info(
            "%s policy %s",
            "Creating" if current is None else "Updating",
            profile_name,
        )
        self.store.write(path, {"name": profile_name, "policy": policy})
        return profile_name

    def ensure_kv_mount(self, storage_path: str) -> bool:
        """Mount a KV engine at storage_path if nothing is mounted there

        Returns:
            mounted:  bool
                True if a new mount was created
        """
        mount_key = f"{storage_path.strip('/')}/"
        if mount_key in self.store.list_mounts():
            log.debug2("KV mount %s already exists", storage_path)
            return False
        log.info("Mounting KV engine at %s", storage_path)
        self.store.mount(storage_path, constants.KV_MOUNT_TYPE, constants.KV_MOUNT_OPTIONS)
        return True

    def configure_profile(self, profile_name: str) -> str:
        """Ensure the profile's KV mount and policy"""
        storage_path = default_storage_path(profile_name)
        self.ensure_kv_mount(storage_path)
        return self.apply_policy(profile_name, storage_path)
