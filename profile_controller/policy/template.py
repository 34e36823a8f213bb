"""
Rendering of the access-control policy attached to each profile. The output is
compared byte for byte against the stored policy, so it must be reproducible.
"""

# Standard
from typing import Optional, Sequence

# Local
from .. import config

POLICY_HEADER = """
#
# Policy for Kubeflow profile: {profile_name}
# (policy managed by the custom Kubeflow Profiles controller)
#

# Grant full access to the KV created for this profile
path "{storage_path}/*" {{
\tcapabilities = ["create", "update", "delete", "read", "list"]
}}

# Grant access to MinIO keys associated with this profile
"""

BACKING_STORE_BLOCK = """path "{store}/keys/{profile_name}" {{
\tcapabilities = ["read"]
}}
"""


def default_storage_path(profile_name: str) -> str:
    """The KV path owned by a profile when none is given"""
    return f"{config.vault.kv_prefix}{profile_name}"


def render_policy(
    profile_name: str,
    backing_stores: Sequence[str],
    storage_path: Optional[str] = None,
) -> str:
    """Render the policy for a profile

    Args:
        profile_name:  str
            The profile the policy is for
        backing_stores:  Sequence[str]
            Backing store names granted read access, rendered in the given
            order
        storage_path:  Optional[str]
            The KV path granted full access. Defaults to kv_<profile_name>

    Returns:
        policy:  str
            The rendered policy document
    """
    storage_path = storage_path or default_storage_path(profile_name)
    blocks = [
        POLICY_HEADER.format(profile_name=profile_name, storage_path=storage_path)
    ]
    blocks.extend(
        BACKING_STORE_BLOCK.format(store=store, profile_name=profile_name)
        for store in backing_stores
    )
    return "".join(blocks)
